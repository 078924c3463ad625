"""API route registration."""

from fastapi import FastAPI

from ledger_bridge.api.routes import harness, health, items, records


def register_routes(app: FastAPI) -> None:
    """Register all API routers with the FastAPI app."""
    app.include_router(health.router)
    app.include_router(items.router)
    app.include_router(records.router)
    app.include_router(harness.router)
