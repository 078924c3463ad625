"""
FastAPI backend server for the ledger bridge.

This module builds the FastAPI application that fronts the confirmation
engine. It sets up:
- Root logging from ``config.logging``
- CORS middleware from ``config.security``
- The service container (ledger clients, store, engine, harness), built at
  startup and closed at shutdown
- Exception handlers mapping domain errors to HTTP status codes
- All API routes

Confirmation handlers are plain ``def`` functions. FastAPI runs them in its
thread pool, so the engine's blocking polls and sleeps never stall the event
loop.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ledger_bridge import __version__
from ledger_bridge.api.routes import register_routes
from ledger_bridge.catalog.errors import ItemNotFoundError, NotItemOwnerError
from ledger_bridge.chain.errors import LedgerError, RecordNotFoundError
from ledger_bridge.config import BridgeConfig
from ledger_bridge.config import config as default_config
from ledger_bridge.confirmation.harness import HarnessDisabledError, UnknownWalletError
from ledger_bridge.services.container import BridgeServices, build_services

logger = logging.getLogger(__name__)

# ============================================================================
# LOGGING
# ============================================================================

_FORMATS = {
    "simple": "%(levelname)s %(message)s",
    "detailed": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
}


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def configure_logging(cfg: BridgeConfig | None = None) -> None:
    """Configure the root logger from ``cfg.logging``."""
    cfg = cfg or default_config
    handler = logging.StreamHandler()
    if cfg.logging.format == "json":
        handler.setFormatter(JsonLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(_FORMATS[cfg.logging.format]))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(cfg.logging.level)


# ============================================================================
# ERROR MAPPING
# ============================================================================


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


def register_exception_handlers(app: FastAPI) -> None:
    """Translate domain exceptions raised by handlers into JSON errors."""

    @app.exception_handler(ValueError)
    async def value_error(_request: Request, exc: ValueError) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(NotItemOwnerError)
    async def not_owner(_request: Request, exc: NotItemOwnerError) -> JSONResponse:
        return _error(403, str(exc))

    @app.exception_handler(ItemNotFoundError)
    async def item_not_found(_request: Request, exc: ItemNotFoundError) -> JSONResponse:
        return _error(404, str(exc))

    @app.exception_handler(RecordNotFoundError)
    async def record_not_found(_request: Request, exc: RecordNotFoundError) -> JSONResponse:
        return _error(404, exc.details)

    @app.exception_handler(HarnessDisabledError)
    async def harness_disabled(_request: Request, exc: HarnessDisabledError) -> JSONResponse:
        return _error(404, str(exc))

    @app.exception_handler(UnknownWalletError)
    async def unknown_wallet(_request: Request, exc: UnknownWalletError) -> JSONResponse:
        return _error(400, "Invalid test user ID")

    @app.exception_handler(LedgerError)
    async def ledger_error(_request: Request, exc: LedgerError) -> JSONResponse:
        logger.warning("Ledger call failed: %s", exc)
        return _error(502, str(exc))


# ============================================================================
# APPLICATION FACTORY
# ============================================================================


def create_app(
    services: BridgeServices | None = None,
    cfg: BridgeConfig | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        services: Pre-built service container. When omitted, one is built from
            ``cfg`` at startup and closed at shutdown.
        cfg: Configuration; defaults to the module-level ``config``.
    """
    cfg = cfg or default_config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = getattr(app.state, "services", None) is None
        if owned:
            app.state.services = build_services(cfg)
            logger.info(
                "Bridge ready: private %s, public %s",
                app.state.services.private.address,
                app.state.services.public.address,
            )
        try:
            yield
        finally:
            if owned:
                app.state.services.close()
                app.state.services = None

    docs_url = "/docs" if cfg.security.docs_enabled else None
    app = FastAPI(
        title="Ledger Bridge",
        version=__version__,
        lifespan=lifespan,
        docs_url=docs_url,
        redoc_url=None,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.security.cors_origins,
        allow_credentials=cfg.security.cors_allow_credentials,
        allow_methods=cfg.security.cors_allow_methods,
        allow_headers=cfg.security.cors_allow_headers,
    )

    register_exception_handlers(app)
    register_routes(app)
    return app


app = create_app()


def start_server(host: str | None = None, port: int | None = None) -> None:
    """Run the API under uvicorn, defaulting to ``config.server``."""
    import uvicorn

    configure_logging()
    uvicorn.run(
        app,
        host=host or default_config.server.host,
        port=port or default_config.server.port,
        log_config=None,
    )


if __name__ == "__main__":
    start_server()
