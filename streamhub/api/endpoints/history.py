"""
Continue Watching Endpoint
"""
from fastapi import APIRouter, Depends, Query

from streamhub.api.deps import get_hub

router = APIRouter()


@router.get("/continue-watching")
async def get_continue_watching(
    limit: int = Query(15, ge=1, le=100, description="Maximum number of entries"),
    hub=Depends(get_hub),
):
    """Local and Trakt in-progress items, most recent first"""
    entries = await hub.playback.continue_watching(limit)
    return {
        "items": [
            {
                **entry.to_record(),
                "progress": entry.progress,
                "progress_string": entry.progress_string(),
                "remaining_string": entry.remaining_string(),
            }
            for entry in entries
        ]
    }
