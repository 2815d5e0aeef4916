import json

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.llm import ChatCompletion
from shared.models.tools import ToolInvocationRequest


class LLMClientOllama(LLMClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    def _get_default_chat_model(self) -> str:
        return "llama3.1"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        # root on ollama
        return ""

    def _get_endpoint_chat(self) -> str:
        return "/api/chat"

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(self, messages: list[dict], tools: list[dict] | None, max_tokens: int) -> dict:
        """Build the Ollama chat request body.

        Returns:
            dict: {"model": "...", "messages": [...], "stream": False, "options": {...}}
        """
        payload = {
            "model": self.chat_model,
            "messages": messages,
            "stream": False,
            "options": {"temperature": self.temperature, "num_predict": max_tokens},
        }
        if tools:
            payload["tools"] = tools
        return payload

    def build_tool_call_message(self, call: ToolInvocationRequest) -> dict:
        # ollama expects the arguments as an object, not as a JSON string
        try:
            arguments = json.loads(call.arguments_json)
        except json.JSONDecodeError:
            arguments = {}
        return {
            "role": "assistant",
            "content": "",
            "tool_calls": [{"function": {"name": call.name, "arguments": arguments}}],
        }

    def build_tool_result_message(self, call: ToolInvocationRequest, result: str) -> dict:
        return {"role": "tool", "content": result, "tool_name": call.name}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_chat_completion(self, response_data: dict) -> ChatCompletion:
        """Extract text or the first tool call from an Ollama /api/chat response.

        Raises:
            ValueError: If the response does not contain a valid message.
        """
        message = response_data.get("message")
        if not isinstance(message, dict):
            raise ValueError(
                "Ollama chat response does not contain a valid message. "
                "Response keys: %s" % list(response_data.keys())
            )

        tool_calls = message.get("tool_calls") or []
        if tool_calls:
            function = tool_calls[0].get("function") or {}
            arguments = function.get("arguments", {})
            arguments_json = arguments if isinstance(arguments, str) else json.dumps(arguments)
            return ChatCompletion(
                tool_call=ToolInvocationRequest(name=function.get("name", ""), arguments_json=arguments_json)
            )

        content = message.get("content")
        if content is None:
            raise ValueError("Ollama chat response message contains no content.")
        return ChatCompletion(text=content)
