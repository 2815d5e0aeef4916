"""Wiring of clients, stores and services shared by the HTTP routers."""

import asyncio

import httpx

from services.chat.ConversationOrchestrator import ConversationOrchestrator
from services.chat.PromptBuilder import PromptBuilder
from services.chat.ToolCallLoop import ToolCallLoop
from services.chat.ToolExecutor import ToolExecutor
from services.chat.WorkspaceTools import WorkspaceTools
from services.rag.ContextAssembler import ContextAssembler
from services.rag.IndexingService import IndexingService
from services.rag.VectorIndex import VectorIndex
from shared.clients.ClientInterface import ClientInterface
from shared.clients.calendar.CalendarClientInterface import CalendarClientInterface
from shared.clients.calendar.CalendarClientManager import CalendarClientManager
from shared.clients.crm.CRMClientInterface import CRMClientInterface
from shared.clients.crm.CRMClientManager import CRMClientManager
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.mail.MailClientInterface import MailClientInterface
from shared.clients.mail.MailClientManager import MailClientManager
from shared.errors import ProviderError
from shared.helper.HelperConfig import HelperConfig
from shared.models.owner import Owner
from shared.stores.ConversationStoreInterface import ConversationStoreInterface
from shared.stores.DocumentStoreInterface import DocumentStoreInterface
from shared.stores.OwnerStoreInterface import OwnerStoreInterface
from shared.stores.memory.ConversationStoreMemory import ConversationStoreMemory
from shared.stores.memory.DocumentStoreMemory import DocumentStoreMemory
from shared.stores.memory.OwnerStoreMemory import OwnerStoreMemory


class AppServices:
    """Holds every long-lived object of the application.

    Built once at startup, either from the environment (:meth:`from_config`)
    or directly from prebuilt collaborators in tests.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        llm_client: LLMClientInterface,
        embed_client: EmbedClientInterface,
        mail_client: MailClientInterface | None = None,
        calendar_client: CalendarClientInterface | None = None,
        crm_client: CRMClientInterface | None = None,
        document_store: DocumentStoreInterface | None = None,
        conversation_store: ConversationStoreInterface | None = None,
        owner_store: OwnerStoreInterface | None = None,
    ) -> None:
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()

        self.llm_client = llm_client
        self.embed_client = embed_client
        self.mail_client = mail_client
        self.calendar_client = calendar_client
        self.crm_client = crm_client

        self.document_store = document_store or DocumentStoreMemory(helper_config=helper_config)
        self.conversation_store = conversation_store or ConversationStoreMemory(helper_config=helper_config)
        self.owner_store = owner_store or OwnerStoreMemory(helper_config=helper_config)

        self.tool_executor = ToolExecutor(helper_config=helper_config)
        WorkspaceTools(
            helper_config=helper_config,
            mail_client=mail_client,
            calendar_client=calendar_client,
            crm_client=crm_client,
        ).register_all(self.tool_executor)

        self.indexing_service = IndexingService(
            helper_config=helper_config,
            document_store=self.document_store,
            embed_client=embed_client,
            mail_client=mail_client,
            calendar_client=calendar_client,
            crm_client=crm_client,
        )
        self.orchestrator = ConversationOrchestrator(
            helper_config=helper_config,
            embed_client=embed_client,
            vector_index=VectorIndex(helper_config=helper_config, document_store=self.document_store),
            context_assembler=ContextAssembler(helper_config=helper_config),
            prompt_builder=PromptBuilder(helper_config=helper_config),
            tool_executor=self.tool_executor,
            tool_call_loop=ToolCallLoop(helper_config=helper_config, llm_client=llm_client, tool_executor=self.tool_executor),
            conversation_store=self.conversation_store,
            owner_store=self.owner_store,
        )

        self._indexing_tasks: set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, helper_config: HelperConfig) -> "AppServices":
        """Instantiate the clients configured through ``<TYPE>_ENGINE``."""
        return cls(
            helper_config=helper_config,
            llm_client=LLMClientManager(helper_config=helper_config).get_client(),
            embed_client=EmbedClientManager(helper_config=helper_config).get_client(),
            mail_client=MailClientManager(helper_config=helper_config).get_client(),
            calendar_client=CalendarClientManager(helper_config=helper_config).get_client(),
            crm_client=CRMClientManager(helper_config=helper_config).get_client(),
        )

    ##########################################
    ################ CLIENTS #################
    ##########################################

    def get_clients(self) -> list[ClientInterface]:
        clients = [self.llm_client, self.embed_client, self.mail_client, self.calendar_client, self.crm_client]
        return [client for client in clients if client is not None]

    async def boot(self) -> None:
        self.logging.info("Booting all clients...")
        for client in self.get_clients():
            await client.boot()
        self.logging.info("All clients booted successfully.")

    async def check_connections(self) -> None:
        """Check connectivity to all configured backends on startup.

        Collaborator failures (mail, calendar, CRM) are non-fatal; the related
        tools will fail later and report it in-band. LLM and embedding
        failures are fatal since no message can be answered without them.

        Raises:
            Exception: If the LLM or embedding backend is not reachable.
        """
        for client in [self.mail_client, self.calendar_client, self.crm_client]:
            if client is None:
                continue
            try:
                result: httpx.Response = await client.do_healthcheck()
            except ProviderError as e:
                self.logging.warning("%s client '%s' is not reachable: %s", client.get_client_type().upper(), client.get_engine_name(), e)
                continue
            if not result.is_success:
                self.logging.warning(
                    "%s client '%s' is not reachable (status %d). Related tools may fail.",
                    client.get_client_type().upper(),
                    client.get_engine_name(),
                    result.status_code,
                )

        for client in [self.llm_client, self.embed_client]:
            result = await client.do_healthcheck()
            if not result.is_success:
                raise Exception(
                    f"{client.get_client_type().upper()} client '{client.get_engine_name()}' is not reachable "
                    f"(status {result.status_code}). Cannot serve chat messages."
                )

    async def close(self) -> None:
        self.logging.info("Shutting down, closing all clients...")
        for client in self.get_clients():
            await client.close()
        self.logging.info("All clients closed.")

    ##########################################
    ################ INDEXING ################
    ##########################################

    def start_indexing(self, owner: Owner) -> asyncio.Task:
        """Run a full indexing of the owner's workspace in the background."""
        task = asyncio.create_task(self.indexing_service.do_full_indexing(owner))
        self._indexing_tasks.add(task)
        task.add_done_callback(self._on_indexing_done)
        return task

    def _on_indexing_done(self, task: asyncio.Task) -> None:
        self._indexing_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logging.error("Background indexing failed: %s", error, exc_info=error)
