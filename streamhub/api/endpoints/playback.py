"""
Playback Events Endpoint
Player state transitions pushed by the UI process
"""
from fastapi import APIRouter, Depends, HTTPException

from streamhub.api.deps import get_hub
from streamhub.services.playback import PlayerMessage

router = APIRouter()


@router.post("/playback/events", status_code=202)
async def post_playback_event(message: PlayerMessage, hub=Depends(get_hub)):
    """Queue a player event for the playback coordinator"""
    if not hub.publish(message):
        raise HTTPException(status_code=503, detail="Playback event channel is not running")
    return {"queued": True, "event": message.event}
