import json
from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.errors import ProviderError
from shared.helper.HelperConfig import HelperConfig
from shared.models.llm import ChatCompletion
from shared.models.tools import ToolInvocationRequest


class LLMClientInterface(ClientInterface):
    """Chat-completion backend with tool calling.

    Messages are exchanged in OpenAI format
    (``[{"role": "system" | "user" | "assistant" | "tool", "content": "..."}]``);
    engines translate tool-call records into their own wire format through
    :meth:`build_tool_call_message` and :meth:`build_tool_result_message`.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # chat / completion config
        self.chat_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_CHAT_MODEL", default=self._get_default_chat_model())
        self.temperature = helper_config.get_number_val(f"{self.get_client_type().upper()}_TEMPERATURE", default=0.7)
        self.max_tokens = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_MAX_TOKENS", default=2000))
        self.followup_max_tokens = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_FOLLOWUP_MAX_TOKENS", default=1000))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    @abstractmethod
    def _get_default_chat_model(self) -> str:
        """Returns the chat model used when LLM_CHAT_MODEL is not set."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        """Returns the endpoint path for chat/completion requests (e.g. "/chat/completions")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_chat_payload(self, messages: list[dict], tools: list[dict] | None, max_tokens: int) -> dict:
        """Build the backend-specific request body for a chat/completion request.

        Args:
            messages (list[dict]): OpenAI-format messages.
            tools (list[dict] | None): Tool catalog in OpenAI function format, or None
                when no tool may be called in this round.
            max_tokens (int): Completion token limit for this round.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    @abstractmethod
    def build_tool_call_message(self, call: ToolInvocationRequest) -> dict:
        """Build the assistant transcript entry recording a tool invocation."""
        pass

    @abstractmethod
    def build_tool_result_message(self, call: ToolInvocationRequest, result: str) -> dict:
        """Build the transcript entry carrying a tool result back to the model."""
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_chat_completion(self, response_data: dict) -> ChatCompletion:
        """Extract the reply text or the first requested tool call from a raw chat response.

        Raises:
            ValueError: If the response contains neither text nor a tool call.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_complete(self, messages: list[dict], tools: list[dict] | None = None, max_tokens: int | None = None) -> ChatCompletion:
        """Send one chat/completion request.

        Args:
            messages (list[dict]): OpenAI-format messages, system prompt first.
            tools (list[dict] | None): Tool catalog offered to the model in this round.
            max_tokens (int | None): Completion token limit. Defaults to LLM_MAX_TOKENS.

        Returns:
            ChatCompletion: Either reply text or a single tool invocation.

        Raises:
            ProviderError: On transport failure, timeout, non-2xx status or an unusable response body.
        """
        body = self.get_chat_payload(messages, tools, max_tokens or self.max_tokens)
        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_chat(),
            json=body,
            raise_on_error=True,
        )
        try:
            completion = self.extract_chat_completion(response.json())
        except (json.JSONDecodeError, ValueError, KeyError, IndexError, TypeError) as e:
            self.logging.error("Unusable chat response from '%s': %s", self.get_engine_name(), e)
            raise ProviderError(f"Unusable chat response from {self.get_engine_name()}: {e}") from e

        if completion.is_tool_call:
            self.logging.debug("Model requested tool '%s'.", completion.tool_call.name)
        return completion
