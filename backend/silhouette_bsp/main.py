"""
Main application module for the silhouette baker.

This file sets up the FastAPI application, configures CORS so render
clients on other origins can fetch assets, and exposes a simple health
check endpoint.  The bake router is included under the ``/api``
namespace.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes_bakes import router as bakes_router
from .services.bake_store import init_db


def create_app() -> FastAPI:
    """Factory to create and configure the FastAPI application."""
    app = FastAPI(title="Silhouette BSP baker")

    # Tables must exist before the first request, with or without startup events
    init_db()

    @app.on_event("startup")  # type: ignore[misc]
    async def startup_event() -> None:
        init_db()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(bakes_router, prefix="/api", tags=["bakes"])

    return app


# Uvicorn imports this when running ``uvicorn silhouette_bsp.main:app``
# from within ``backend``
app = create_app()
