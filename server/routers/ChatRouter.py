import time

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from server.core.AppServices import AppServices
from server.dependencies.auth import verify_api_key
from server.models.requests import ChatMessageRequest, InstructionsRequest
from server.models.responses import (
    ChatHistoryItem,
    ChatHistoryResponse,
    ChatMessageResponse,
    ChatSessionsResponse,
    ClearHistoryResponse,
)
from shared.models.owner import Owner

router = APIRouter(prefix="/api/chat", tags=["chat"])


async def _get_known_owner(services: AppServices, owner_id: str) -> Owner:
    owner = await services.owner_store.get(owner_id)
    if owner is None:
        raise HTTPException(status_code=404, detail=f"Owner '{owner_id}' not found")
    return owner


@router.post("/message")
async def send_message(
    request: Request,
    body: ChatMessageRequest,
    _: None = Depends(verify_api_key),
) -> ChatMessageResponse:
    """Answer a chat message of an owner within a session.

    Unknown owners get a profile named after their id. Processing failures
    are answered with an apology text, never with an error status.

    Args:
        request (Request): FastAPI request (provides app.state.services).
        body (ChatMessageRequest): owner_id, session_id and message.
        _ (None): Auth dependency result (unused).

    Returns:
        ChatMessageResponse: The assistant reply.
    """
    services: AppServices = request.app.state.services
    owner = await services.owner_store.get_or_create(body.owner_id)
    reply = await services.orchestrator.process(owner, body.message, body.session_id)
    return ChatMessageResponse(message=reply, status="success", timestamp=int(time.time() * 1000))


@router.get("/sessions")
async def list_sessions(
    request: Request,
    owner_id: str = Query(..., min_length=1),
    _: None = Depends(verify_api_key),
) -> ChatSessionsResponse:
    services: AppServices = request.app.state.services
    owner = await _get_known_owner(services, owner_id)
    sessions = await services.orchestrator.list_sessions(owner)
    return ChatSessionsResponse(owner_id=owner.id, sessions=sessions, total=len(sessions))


@router.get("/history/{session_id}")
async def get_chat_history(
    request: Request,
    session_id: str,
    owner_id: str = Query(..., min_length=1),
    _: None = Depends(verify_api_key),
) -> ChatHistoryResponse:
    """Return all turns of a session in chronological order (404 for an unknown session)."""
    services: AppServices = request.app.state.services
    owner = await _get_known_owner(services, owner_id)
    turns = await services.orchestrator.get_chat_history(owner, session_id)
    if not turns:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found")
    messages = [ChatHistoryItem(id=t.id, role=t.role.value, content=t.content, timestamp=t.timestamp) for t in turns]
    return ChatHistoryResponse(session_id=session_id, messages=messages, total=len(messages))


@router.delete("/history/{session_id}/clear")
async def clear_chat_history(
    request: Request,
    session_id: str,
    owner_id: str = Query(..., min_length=1),
    _: None = Depends(verify_api_key),
) -> ClearHistoryResponse:
    services: AppServices = request.app.state.services
    owner = await _get_known_owner(services, owner_id)
    deleted = await services.orchestrator.clear_history(owner, session_id)
    return ClearHistoryResponse(session_id=session_id, deleted=deleted)


@router.post("/instructions")
async def update_instructions(
    request: Request,
    body: InstructionsRequest,
    _: None = Depends(verify_api_key),
) -> Owner:
    services: AppServices = request.app.state.services
    owner = await services.owner_store.get_or_create(body.owner_id)
    return await services.orchestrator.update_standing_instructions(owner, body.instructions)
