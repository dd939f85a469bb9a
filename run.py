"""
Entry point for the silhouette baker.

Running this script with ``python run.py`` starts the FastAPI server
exposing the bake API.  The application defined in
``backend/silhouette_bsp/main.py`` is imported after adjusting the
Python path to include the ``backend`` directory.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import logging
import uvicorn

logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


def main() -> None:
    """Run the Uvicorn server hosting the bake API."""
    backend_dir = Path(__file__).resolve().parent / "backend"
    if str(backend_dir) not in sys.path:
        sys.path.append(str(backend_dir))

    # Imported inside main() so sys.path is only modified when running
    from silhouette_bsp.main import app  # type: ignore

    uvicorn.run(
        app,
        host=os.getenv("SILHOUETTE_HOST", "0.0.0.0"),
        port=int(os.getenv("SILHOUETTE_PORT", "8000")),
    )


if __name__ == "__main__":
    main()
