import asyncio
from datetime import datetime

import pytz

from shared.errors import StorageError
from shared.helper.HelperConfig import HelperConfig
from shared.models.conversation import ChatSessionSummary, ConversationTurn, TurnRole
from shared.stores.ConversationStoreInterface import ConversationStoreInterface

PREVIEW_MAX_CHARS = 60
PREVIEW_SUFFIX = "..."


def _make_preview(content: str) -> str:
    if len(content) <= PREVIEW_MAX_CHARS:
        return content
    return content[:PREVIEW_MAX_CHARS - len(PREVIEW_SUFFIX)] + PREVIEW_SUFFIX


class ConversationStoreMemory(ConversationStoreInterface):
    """In-process conversation log. Contents are lost on restart."""

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._turns: list[ConversationTurn] = []
        self._next_id = 1
        self._lock = asyncio.Lock()

    def _session_turns(self, owner_id: str, session_id: str) -> list[ConversationTurn]:
        return [t for t in self._turns if t.owner_id == owner_id and t.session_id == session_id]

    async def append(self, owner_id: str, session_id: str, role: TurnRole, content: str) -> ConversationTurn:
        if not owner_id or not session_id:
            raise StorageError("A conversation turn needs an owner_id and a session_id.")

        async with self._lock:
            timestamp = datetime.now(pytz.utc)
            previous = self._session_turns(owner_id, session_id)
            if previous and previous[-1].timestamp > timestamp:
                timestamp = previous[-1].timestamp

            turn = ConversationTurn(
                id=self._next_id,
                owner_id=owner_id,
                session_id=session_id,
                role=role,
                content=content,
                timestamp=timestamp,
            )
            self._turns.append(turn)
            self._next_id += 1
        return turn

    async def get_recent_turns(self, owner_id: str, session_id: str, limit: int, before_id: int | None = None) -> list[ConversationTurn]:
        if limit <= 0:
            return []
        turns = self._session_turns(owner_id, session_id)
        if before_id is not None:
            turns = [t for t in turns if t.id < before_id]
        return list(reversed(turns))[:limit]

    async def get_session_turns(self, owner_id: str, session_id: str) -> list[ConversationTurn]:
        # sort is stable, equal timestamps keep insertion order
        return sorted(self._session_turns(owner_id, session_id), key=lambda t: t.timestamp)

    async def list_sessions(self, owner_id: str) -> list[ChatSessionSummary]:
        sessions: dict[str, list[ConversationTurn]] = {}
        for turn in self._turns:
            if turn.owner_id == owner_id:
                sessions.setdefault(turn.session_id, []).append(turn)

        # most recent first; the later turn id breaks timestamp ties
        ordered = sorted(sessions.items(), key=lambda item: (item[1][-1].timestamp, item[1][-1].id), reverse=True)
        return [
            ChatSessionSummary(
                session_id=session_id,
                preview=_make_preview(turns[0].content),
                last_message_at=turns[-1].timestamp,
                message_count=len(turns),
            )
            for session_id, turns in ordered
        ]

    async def clear_session(self, owner_id: str, session_id: str) -> int:
        async with self._lock:
            kept = [t for t in self._turns if not (t.owner_id == owner_id and t.session_id == session_id)]
            removed = len(self._turns) - len(kept)
            self._turns = kept
        self.logging.info("Cleared %d turns of session '%s'.", removed, session_id)
        return removed
