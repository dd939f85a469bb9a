import os
import sys
import tempfile
from pathlib import Path

# Add the backend directory to sys.path so we can import the package
sys.path.append(str(Path(__file__).resolve().parents[1]))

# Keep test databases and assets out of the real storage directory.  This
# has to happen before silhouette_bsp.config is first imported.
os.environ.setdefault("SILHOUETTE_STORAGE_DIR", tempfile.mkdtemp(prefix="silhouette-tests-"))
