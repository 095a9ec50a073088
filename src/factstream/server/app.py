"""FastAPI application factory and server entrypoint."""

from __future__ import annotations

from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from factstream import __version__
from factstream.config import AppSettings, load_settings
from factstream.hub.broadcast import BroadcastHub
from factstream.hub.ingress import FactIngress
from factstream.log import configure_logging
from factstream.server.routes import router


def create_app(config_path: str | Path | None = None, settings: AppSettings | None = None) -> FastAPI:
    """Create configured FastAPI app with its own hub."""
    if settings is None:
        settings = load_settings(config_path)
    templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

    app = FastAPI(title="Factstream", version=__version__)
    app.state.settings = settings
    app.state.hub = BroadcastHub.from_settings(settings.hub)
    app.state.ingress = FactIngress(app.state.hub, max_payload_bytes=settings.ingress.max_payload_bytes)
    app.state.templates = templates

    app.include_router(router)

    @app.on_event("shutdown")
    def _close_hub() -> None:
        app.state.hub.close()

    @app.get("/", response_class=HTMLResponse)
    def index(request: Request):
        return templates.TemplateResponse(
            request=request,
            name="index.html",
            context={"facts": app.state.hub.history(), "version": __version__},
        )

    return app


def serve(host: str | None = None, port: int | None = None, config_path: str | Path | None = None) -> None:
    """Run the app with a single worker (the hub lives in process memory)."""
    settings = load_settings(config_path)
    configure_logging(settings.logging.level)
    app = create_app(settings=settings)
    uvicorn.run(
        app,
        host=host or settings.server.host,
        port=port or settings.server.port,
        workers=1,
        log_level=settings.logging.level.lower(),
    )
