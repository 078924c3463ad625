"""Health and root endpoints.

The version string is read from ``ledger_bridge.__version__``, resolved from
the installed package metadata.
"""

from fastapi import APIRouter, Depends

from ledger_bridge import __version__
from ledger_bridge.api.models import HealthResponse
from ledger_bridge.api.routes.deps import get_services
from ledger_bridge.services.container import BridgeServices

router = APIRouter()


@router.get("/")
async def root():
    """Root endpoint showing API identity and current version."""
    return {"message": "Ledger Bridge API", "version": __version__}


@router.get("/health", response_model=HealthResponse)
async def health_check(services: BridgeServices = Depends(get_services)):
    """Liveness check. Makes no ledger call."""
    return HealthResponse(
        status="ok",
        private_contract=services.private.address,
        public_contract=services.public.address,
    )
