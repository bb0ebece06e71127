"""
Health check endpoints.
"""

from fastapi import APIRouter

from ..config import settings

router = APIRouter(tags=["Health"])


@router.get("/ping")
async def ping():
    """Simple endpoint to verify server is running."""
    return {"status": "ok", "message": "pong"}


@router.get("/health")
async def health():
    """Report which discovery phases are enabled."""
    return {
        "status": "ok",
        "discovery": {
            "mdns_enabled": settings.discovery.mdns_enabled,
            "sweep_enabled": settings.discovery.sweep_enabled,
        },
    }
