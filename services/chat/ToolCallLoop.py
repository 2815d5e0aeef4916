"""Single-turn completion loop with at most one tool invocation.

Start -> NoToolCall (return text)
      -> ToolCallRequested -> dispatch -> follow-up completion (return text)
      -> LoopFailure -> one recovery completion, else the technical apology
"""

import json

from services.chat.ToolExecutor import ToolExecutor
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.errors import ArgumentError, ProviderError
from shared.helper.HelperConfig import HelperConfig
from shared.models.conversation import ConversationTurn
from shared.models.owner import Owner
from shared.models.tools import ToolInvocationRequest, ToolResult

TECHNICAL_APOLOGY = "I apologize, but I encountered a technical error while processing your request. Please try again."
SYSTEM_ERROR_PREFIX = "System error during function execution: "


class ToolCallLoop:
    def __init__(self, helper_config: HelperConfig, llm_client: LLMClientInterface, tool_executor: ToolExecutor) -> None:
        self.logging = helper_config.get_logger()
        self._llm_client = llm_client
        self._tool_executor = tool_executor

    ##########################################
    ################# OTHER ##################
    ##########################################

    @staticmethod
    def build_messages(system_prompt: str, history: list[ConversationTurn], message: str) -> list[dict]:
        """Return ``[system, *history, user]`` in OpenAI message format. ``history`` must be chronological."""
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend({"role": turn.role.value, "content": turn.content} for turn in history)
        messages.append({"role": "user", "content": message})
        return messages

    @staticmethod
    def parse_arguments(call: ToolInvocationRequest) -> dict:
        """Parse the raw JSON arguments of a tool call.

        Raises:
            ArgumentError: If the arguments are not a JSON object.
        """
        raw = call.arguments_json.strip() or "{}"
        try:
            arguments = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ArgumentError(f"Invalid arguments for {call.name}: {e.msg}") from e
        if not isinstance(arguments, dict):
            raise ArgumentError(f"Invalid arguments for {call.name}: expected a JSON object")
        return arguments

    async def _execute(self, owner: Owner, call: ToolInvocationRequest) -> str:
        try:
            arguments = self.parse_arguments(call)
        except ArgumentError as e:
            self.logging.warning("%s", e)
            return ToolResult.fail(str(e)).render()
        return await self._tool_executor.dispatch(owner, call.name, arguments)

    ##########################################
    ################## RUN ###################
    ##########################################

    async def run(self, owner: Owner, system_prompt: str, history: list[ConversationTurn], message: str) -> str:
        """Answer one user message.

        Args:
            owner (Owner): Owner the tools act for.
            system_prompt (str): Assembled system prompt.
            history (list[ConversationTurn]): Prior turns in chronological order.
            message (str): The current user message.

        Returns:
            str: Final assistant text.

        Raises:
            ProviderError: If the first completion fails. Later failures are recovered in-band.
        """
        messages = self.build_messages(system_prompt, history, message)
        completion = await self._llm_client.do_complete(messages, tools=self._tool_executor.get_tool_catalog())
        if not completion.is_tool_call:
            return completion.text or ""

        call = completion.tool_call
        self.logging.info("Tool call requested: %s", call.name, color="cyan")
        try:
            result = await self._execute(owner, call)
            transcript = [
                *messages,
                self._llm_client.build_tool_call_message(call),
                self._llm_client.build_tool_result_message(call, result),
            ]
            followup = await self._llm_client.do_complete(transcript, tools=None, max_tokens=self._llm_client.followup_max_tokens)
            if followup.is_tool_call:
                raise ProviderError(f"Follow-up completion requested another tool call ({followup.tool_call.name}).")
            return followup.text or ""
        except Exception as e:
            self.logging.error("Error in tool call flow for '%s': %s", call.name, e)
            return await self._recover(messages, call, e)

    async def _recover(self, messages: list[dict], call: ToolInvocationRequest, error: Exception) -> str:
        """Let the model explain a failed tool round in exactly one more completion."""
        envelope = ToolResult.fail(f"{SYSTEM_ERROR_PREFIX}{error}").render()
        try:
            transcript = [
                *messages,
                self._llm_client.build_tool_call_message(call),
                self._llm_client.build_tool_result_message(call, envelope),
            ]
            completion = await self._llm_client.do_complete(transcript, tools=None, max_tokens=self._llm_client.followup_max_tokens)
        except Exception as e:
            self.logging.error("Recovery completion failed: %s", e)
            return TECHNICAL_APOLOGY
        if completion.is_tool_call or not completion.text:
            return TECHNICAL_APOLOGY
        return completion.text
