"""
Streams and Meta Endpoints
Aggregated streams and single-addon metadata for a title
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Path

from streamhub.api.deps import get_hub
from streamhub.core.errors import NotFoundError, ParseError, TransportError
from streamhub.models.addon import MetaResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/streams/{type}/{id}")
async def get_streams(
    type: str = Path(..., description="Content type: movie or series"),
    id: str = Path(..., description="Content id, e.g. tt0903747:1:3"),
    hub=Depends(get_hub),
):
    """Streams from every addon that serves this id, grouped by addon"""
    results = await hub.aggregator.fetch_all_streams(type, id)
    order = {addon.id: addon.order for addon in hub.registry.providers()}
    results.sort(key=lambda pair: order.get(pair[0].id, len(order)))

    return {
        "streams": [
            {
                "addon": {"id": manifest.id, "name": manifest.name},
                "streams": [stream.model_dump(exclude_none=True) for stream in items],
            }
            for manifest, items in results
        ]
    }


@router.get("/meta/{type}/{id}", response_model=MetaResponse)
async def get_meta(
    type: str = Path(..., description="Content type: movie or series"),
    id: str = Path(..., description="Content id"),
    hub=Depends(get_hub),
):
    try:
        return await hub.aggregator.fetch_meta(type, id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (TransportError, ParseError) as e:
        logger.warning(f"Meta fetch for {type}/{id} failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))
