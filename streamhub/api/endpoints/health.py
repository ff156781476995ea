"""
Health Check Endpoint
"""
from fastapi import APIRouter, Depends

from streamhub.api.deps import get_hub
from streamhub.core.config import VERSION

router = APIRouter()


@router.get("/health")
async def health_check(hub=Depends(get_hub)):
    """Health check endpoint for monitoring"""
    return {
        "status": "healthy",
        "version": VERSION,
        "addons": len(hub.registry.providers()),
    }
