from abc import ABC, abstractmethod

from shared.models.conversation import ChatSessionSummary, ConversationTurn, TurnRole


class ConversationStoreInterface(ABC):
    """Append-only log of conversation turns, grouped by owner and session."""

    @abstractmethod
    async def append(self, owner_id: str, session_id: str, role: TurnRole, content: str) -> ConversationTurn:
        """Persist a turn.

        The timestamp is the current UTC time, clamped so that it is never
        earlier than the previous turn of the same session.

        Raises:
            StorageError: If the turn cannot be persisted.
        """
        pass

    @abstractmethod
    async def get_recent_turns(self, owner_id: str, session_id: str, limit: int, before_id: int | None = None) -> list[ConversationTurn]:
        """Return up to ``limit`` turns of a session, most recent first.

        Args:
            before_id (int | None): Only turns with a smaller id are considered.
        """
        pass

    @abstractmethod
    async def get_session_turns(self, owner_id: str, session_id: str) -> list[ConversationTurn]:
        """Return all turns of a session in ascending timestamp order."""
        pass

    @abstractmethod
    async def list_sessions(self, owner_id: str) -> list[ChatSessionSummary]:
        """Return the owner's sessions, most recently active first."""
        pass

    @abstractmethod
    async def clear_session(self, owner_id: str, session_id: str) -> int:
        """Delete all turns of a session. Returns the number of deleted turns."""
        pass
