from fastapi import APIRouter, Depends, Request

from server.core.AppServices import AppServices
from server.dependencies.auth import verify_api_key
from server.models.requests import OwnerRequest
from shared.models.owner import Owner

router = APIRouter(prefix="/api/owners", tags=["owners"])


@router.put("/{owner_id}")
async def upsert_owner(
    request: Request,
    owner_id: str,
    body: OwnerRequest,
    _: None = Depends(verify_api_key),
) -> Owner:
    """Create or replace the profile of an owner.

    Args:
        request (Request): FastAPI request (provides app.state.services).
        owner_id (str): Owner identifier.
        body (OwnerRequest): Display name, email and optional standing instructions.
        _ (None): Auth dependency result (unused).

    Returns:
        Owner: The stored profile.
    """
    services: AppServices = request.app.state.services
    owner = Owner(id=owner_id, name=body.name, email=body.email, standing_instructions=body.standing_instructions)
    return await services.owner_store.upsert(owner)
