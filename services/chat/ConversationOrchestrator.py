"""Per-message pipeline: persist, retrieve, prompt, complete, persist.

The orchestrator is the last error boundary. Whatever fails while a message
is processed, the caller receives text.
"""

from services.chat.PromptBuilder import PERSONA, PromptBuilder
from services.chat.ToolCallLoop import ToolCallLoop
from services.chat.ToolExecutor import ToolExecutor
from services.rag.ContextAssembler import ContextAssembler
from services.rag.VectorIndex import VectorIndex
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import clear_log_context, set_log_context
from shared.models.conversation import ChatSessionSummary, ConversationTurn, TurnRole
from shared.models.owner import Owner
from shared.stores.ConversationStoreInterface import ConversationStoreInterface
from shared.stores.OwnerStoreInterface import OwnerStoreInterface

PROCESSING_APOLOGY = "I apologize, but I encountered an error processing your request. Please try again."


class ConversationOrchestrator:
    def __init__(
        self,
        helper_config: HelperConfig,
        embed_client: EmbedClientInterface,
        vector_index: VectorIndex,
        context_assembler: ContextAssembler,
        prompt_builder: PromptBuilder,
        tool_executor: ToolExecutor,
        tool_call_loop: ToolCallLoop,
        conversation_store: ConversationStoreInterface,
        owner_store: OwnerStoreInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._embed_client = embed_client
        self._vector_index = vector_index
        self._context_assembler = context_assembler
        self._prompt_builder = prompt_builder
        self._tool_executor = tool_executor
        self._tool_call_loop = tool_call_loop
        self._conversation_store = conversation_store
        self._owner_store = owner_store

        self.history_turns = int(helper_config.get_number_val("CHAT_HISTORY_TURNS", default=5))
        self.top_k = int(helper_config.get_number_val("RAG_TOP_K", default=5))
        self.owner_scoped = helper_config.get_bool_val("RAG_OWNER_SCOPED", default=True)

    ##########################################
    ################ PROCESS #################
    ##########################################

    async def process(self, owner: Owner, message: str, session_id: str) -> str:
        """Answer a user message within a session.

        The user turn is persisted first and stays persisted even when a later
        step fails. An assistant turn is persisted only for a successful answer.

        Args:
            owner (Owner): The advisor sending the message.
            message (str): The user message.
            session_id (str): Conversation session.

        Returns:
            str: The assistant reply, or a fixed apology on failure.
        """
        set_log_context(owner.id, session_id)
        try:
            user_turn = await self._conversation_store.append(owner.id, session_id, TurnRole.USER, message)
            history = await self._load_history(owner, session_id, before_id=user_turn.id)
            context = await self._retrieve_context(owner, message)
            system_prompt = self._prompt_builder.build(
                PERSONA,
                owner,
                self._tool_executor.describe_tools(),
                self._tool_executor.get_tool_names(),
                context=context,
                instructions=owner.standing_instructions,
            )
            response = await self._tool_call_loop.run(owner, system_prompt, history, message)
            await self._conversation_store.append(owner.id, session_id, TurnRole.ASSISTANT, response)
            return response
        except Exception as e:
            self.logging.exception("Error processing chat message: %s", e)
            return PROCESSING_APOLOGY
        finally:
            clear_log_context()

    async def _load_history(self, owner: Owner, session_id: str, before_id: int) -> list[ConversationTurn]:
        recent = await self._conversation_store.get_recent_turns(owner.id, session_id, self.history_turns, before_id=before_id)
        return list(reversed(recent))

    async def _retrieve_context(self, owner: Owner, message: str) -> str:
        query_vector = await self._embed_client.do_embed_text(message)
        results = await self._vector_index.search(
            query_vector,
            self.top_k,
            owner_id=owner.id if self.owner_scoped else None,
        )
        self.logging.debug("Retrieved %d context documents.", len(results))
        return self._context_assembler.assemble(results)

    ##########################################
    ################ SESSIONS ################
    ##########################################

    async def list_sessions(self, owner: Owner) -> list[ChatSessionSummary]:
        return await self._conversation_store.list_sessions(owner.id)

    async def get_chat_history(self, owner: Owner, session_id: str) -> list[ConversationTurn]:
        """All turns of the session in ascending timestamp order."""
        return await self._conversation_store.get_session_turns(owner.id, session_id)

    async def clear_history(self, owner: Owner, session_id: str) -> int:
        deleted = await self._conversation_store.clear_session(owner.id, session_id)
        self.logging.info("Cleared %d turns of session '%s' for owner '%s'.", deleted, session_id, owner.id)
        return deleted

    async def update_standing_instructions(self, owner: Owner, instructions: str | None) -> Owner:
        return await self._owner_store.set_standing_instructions(owner.id, instructions)
