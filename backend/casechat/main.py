from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from .config import get_settings
from .routers import api, webhook
import logging
import sys
import os

# Configure root logging if not already configured by Uvicorn
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
if not logging.getLogger().handlers:
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, stream=sys.stdout)

logging.getLogger("casechat.routers.webhook").setLevel(logging.INFO)
logging.getLogger("uvicorn.access").setLevel(logging.INFO)

logger = logging.getLogger(__name__)


def _resolve_spa_dir(configured: str | None) -> str:
    if configured:
        return os.path.abspath(configured)
    return os.path.normpath(os.path.join(os.path.dirname(__file__), '..', '..', 'dist', 'spa'))


def mount_spa(app: FastAPI, spa_dir: str) -> bool:
    """Serve the built client with an index.html fallback for client-side routes."""
    spa_dir = os.path.abspath(spa_dir)
    index = os.path.join(spa_dir, 'index.html')
    if not os.path.isfile(index):
        logger.warning("No SPA build found at %s; skipping static mount", spa_dir)
        return False

    assets_dir = os.path.join(spa_dir, 'assets')
    if os.path.isdir(assets_dir):
        app.mount('/assets', StaticFiles(directory=assets_dir), name='spa-assets')

    @app.get("/{full_path:path}", include_in_schema=False)
    async def spa_fallback(full_path: str):
        if full_path.startswith("api/") or full_path.startswith("webhook/"):
            return JSONResponse(status_code=404, content={"error": "Not found"})
        candidate = os.path.normpath(os.path.join(spa_dir, full_path))
        if full_path and os.path.commonpath([spa_dir, candidate]) == spa_dir and os.path.isfile(candidate):
            return FileResponse(candidate)
        return FileResponse(index)

    logger.info("Serving SPA from %s", spa_dir)
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One pooled client for every forwarded webhook request.
    settings = get_settings()
    async with httpx.AsyncClient(timeout=settings.webhook_timeout_seconds) as client:
        app.state.http_client = client
        yield
    logger.info("Webhook HTTP client closed")


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Case Chat Backend", version="0.1.0", lifespan=lifespan)

    if settings.backend_allow_all_origins:
        logger.info("CORS: allowing all origins (BACKEND_ALLOW_ALL_ORIGINS=1)")
        origins = ["*"]
    else:
        origins = settings.frontend_origins

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api.router, prefix="/api")
    app.include_router(webhook.router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    # In development the client dev server handles routing itself.
    if settings.is_production:
        mount_spa(app, _resolve_spa_dir(settings.spa_dir))

    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "casechat.main:app",
        host="0.0.0.0",
        port=settings.backend_port,
        log_level=settings.backend_log_level,
    )


if __name__ == "__main__":
    run()
