"""FastAPI application."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from orderflow.app.api.deps import get_pipeline
from orderflow.app.api.routes.health import router as health_router
from orderflow.app.api.routes.libraries import router as libraries_router
from orderflow.app.api.routes.metrics import router as metrics_router
from orderflow.app.api.routes.playlists import router as playlists_router
from orderflow.app.api.routes.runs import router as runs_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    # Close the ProPresenter connection only if a request ever opened it
    if get_pipeline.cache_info().currsize:
        await get_pipeline().client.aclose()


app = FastAPI(title="Service Order Builder", version="0.1.0", lifespan=lifespan)

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(runs_router, tags=["runs"])
app.include_router(playlists_router, tags=["playlists"])
app.include_router(libraries_router, tags=["libraries"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Service Order Builder", "version": "0.1.0"}
