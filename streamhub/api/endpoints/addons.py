"""
Addons Endpoint
Install, remove, enable and reorder addons
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path
from pydantic import BaseModel

from streamhub.api.deps import get_hub
from streamhub.core.errors import ParseError, TransportError
from streamhub.models.addon import InstalledAddon, Manifest

logger = logging.getLogger(__name__)
router = APIRouter()


class InstallRequest(BaseModel):
    url: str


class EnableRequest(BaseModel):
    enabled: bool


class MoveRequest(BaseModel):
    direction: int


@router.get("/addons", response_model=List[InstalledAddon])
async def list_addons(hub=Depends(get_hub)):
    """Installed addons in priority order"""
    return hub.registry.providers()


@router.post("/addons", response_model=Manifest)
async def install_addon(request: InstallRequest, hub=Depends(get_hub)):
    try:
        return await hub.registry.install(request.url)
    except TransportError as e:
        logger.warning(f"Install of {request.url} failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    except ParseError as e:
        logger.warning(f"Install of {request.url} failed: {e}")
        raise HTTPException(status_code=422, detail=e.reason)


@router.delete("/addons/{addon_id}")
async def uninstall_addon(
    addon_id: str = Path(..., description="Manifest id"),
    hub=Depends(get_hub),
):
    if not hub.registry.uninstall(addon_id):
        raise HTTPException(status_code=404, detail=f"Addon not installed: {addon_id}")
    return {"success": True}


@router.patch("/addons/{addon_id}")
async def set_addon_enabled(
    request: EnableRequest,
    addon_id: str = Path(..., description="Manifest id"),
    hub=Depends(get_hub),
):
    if not hub.registry.set_enabled(addon_id, request.enabled):
        raise HTTPException(status_code=404, detail=f"Addon not installed: {addon_id}")
    return {"success": True, "enabled": request.enabled}


@router.post("/addons/{addon_id}/move")
async def move_addon(
    request: MoveRequest,
    addon_id: str = Path(..., description="Manifest id"),
    hub=Depends(get_hub),
):
    if not hub.registry.is_installed(addon_id):
        raise HTTPException(status_code=404, detail=f"Addon not installed: {addon_id}")
    moved = hub.registry.move(addon_id, request.direction)
    return {"moved": moved, "order": hub.registry.get(addon_id).order}
