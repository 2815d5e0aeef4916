from fastapi import APIRouter, Depends, HTTPException, Request

from server.core.AppServices import AppServices
from server.dependencies.auth import verify_api_key
from server.models.responses import IndexAcceptedResponse, IndexStatsResponse, PurgeResponse

router = APIRouter(prefix="/api/index", tags=["index"])


@router.post("/{owner_id}", status_code=202)
async def start_indexing(
    request: Request,
    owner_id: str,
    _: None = Depends(verify_api_key),
) -> IndexAcceptedResponse:
    """Start a full indexing of the owner's mail, calendar and CRM in the background.

    Args:
        request (Request): FastAPI request (provides app.state.services).
        owner_id (str): Owner whose workspace is indexed. Must exist.
        _ (None): Auth dependency result (unused).

    Returns:
        IndexAcceptedResponse: Acknowledgement; indexing continues after the response.
    """
    services: AppServices = request.app.state.services
    owner = await services.owner_store.get(owner_id)
    if owner is None:
        raise HTTPException(status_code=404, detail=f"Owner '{owner_id}' not found")
    services.start_indexing(owner)
    return IndexAcceptedResponse(status="accepted", owner_id=owner_id)


@router.get("/{owner_id}/stats")
async def get_indexing_stats(
    request: Request,
    owner_id: str,
    _: None = Depends(verify_api_key),
) -> IndexStatsResponse:
    services: AppServices = request.app.state.services
    stats = await services.indexing_service.get_indexing_stats(owner_id)
    return IndexStatsResponse(**stats)


@router.delete("/{owner_id}")
async def purge_owner_documents(
    request: Request,
    owner_id: str,
    _: None = Depends(verify_api_key),
) -> PurgeResponse:
    services: AppServices = request.app.state.services
    deleted = await services.indexing_service.purge_owner(owner_id)
    return PurgeResponse(owner_id=owner_id, deleted=deleted)
