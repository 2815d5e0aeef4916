"""Pydantic models for persisted conversation turns and session summaries."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class TurnRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ConversationTurn(BaseModel):
    """One message within a conversation session.

    Within a session, timestamps are monotonically non-decreasing in creation
    order. Turns are never mutated; they are deleted only by clearing the
    session.

    Attributes:
        id:         Storage sequence number.
        owner_id:   The owner the turn belongs to.
        session_id: Opaque identifier grouping the turns of one conversation.
        role:       user, assistant or system.
        content:    Message text.
        timestamp:  UTC creation time.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    owner_id: str
    session_id: str
    role: TurnRole
    content: str
    timestamp: datetime


class ChatSessionSummary(BaseModel):
    """Listing entry for one session of an owner."""

    session_id: str
    preview: str
    last_message_at: datetime
    message_count: int
