from datetime import datetime

from pydantic import BaseModel

from shared.models.conversation import ChatSessionSummary


class ChatMessageResponse(BaseModel):
    message: str
    status: str
    timestamp: int  # epoch milliseconds


class ChatSessionsResponse(BaseModel):
    owner_id: str
    sessions: list[ChatSessionSummary]
    total: int


class ChatHistoryItem(BaseModel):
    id: int
    role: str
    content: str
    timestamp: datetime


class ChatHistoryResponse(BaseModel):
    session_id: str
    messages: list[ChatHistoryItem]
    total: int


class ClearHistoryResponse(BaseModel):
    session_id: str
    deleted: int


class IndexAcceptedResponse(BaseModel):
    status: str
    owner_id: str


class IndexStatsResponse(BaseModel):
    owner_id: str
    total: int
    by_type: dict[str, int]


class PurgeResponse(BaseModel):
    owner_id: str
    deleted: int
