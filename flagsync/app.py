"""
FlagSync - FastAPI Application
JSON surface for the project Flag widget.

Run with:
    uvicorn flagsync.app:app --reload --host 0.0.0.0 --port 8001
"""

import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from flagsync import __version__, config
from flagsync.api.routes import register_routes
from flagsync.core.logging import configure_logging
from flagsync.host import BackendHost
from flagsync.reconciler import FieldReconciler
from flagsync.registry import FieldRegistryClient
from flagsync.state_store import FlagStateStore

configure_logging()
logger = logging.getLogger(__name__)


def build_store(host: BackendHost) -> FlagStateStore:
    """Wire registry, reconciler and store around ``host``."""
    registry = FieldRegistryClient(host)
    return FlagStateStore(registry, FieldReconciler(registry))


# ---------------------------------------------------------------------------
# Lifespan (startup / shutdown)
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Runs once on startup, yields for the lifetime of the app, then cleans up."""
    host = BackendHost()
    app.state.store = build_store(host)
    logger.info("FlagSync ready (backend=%s)", config.BACKEND_URL)

    yield

    await host.close()


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------

app = FastAPI(
    title="FlagSync",
    version=__version__,
    description="Keeps a per-project Flag field attached and toggleable",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    tb = traceback.format_exc()
    logger.error(
        "Unhandled exception on %s %s: %s\n%s",
        request.method, request.url.path, exc, tb,
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": str(exc),
            "type": type(exc).__name__,
            "path": request.url.path,
        },
    )


register_routes(app)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "flagsync.app:app",
        host="0.0.0.0",
        port=config.PORT,
        reload=True,
    )
