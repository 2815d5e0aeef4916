import uuid

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.llm import ChatCompletion
from shared.models.tools import ToolInvocationRequest


class LLMClientOpenai(LLMClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://api.openai.com/v1", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Openai"

    def _get_default_chat_model(self) -> str:
        return "gpt-4"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/models"

    def _get_endpoint_chat(self) -> str:
        return "/chat/completions"

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(self, messages: list[dict], tools: list[dict] | None, max_tokens: int) -> dict:
        payload = {
            "model": self.chat_model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": max_tokens,
        }
        if tools:
            payload["tools"] = tools
            payload["tool_choice"] = "auto"
        return payload

    def build_tool_call_message(self, call: ToolInvocationRequest) -> dict:
        return {
            "role": "assistant",
            "content": None,
            "tool_calls": [
                {
                    "id": call.call_id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.arguments_json},
                }
            ],
        }

    def build_tool_result_message(self, call: ToolInvocationRequest, result: str) -> dict:
        return {"role": "tool", "tool_call_id": call.call_id, "content": result}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_chat_completion(self, response_data: dict) -> ChatCompletion:
        """Extract text or the first tool call from an OpenAI /chat/completions response.

        Only the first entry of ``tool_calls`` is honoured; one tool runs per message.
        """
        choices = response_data.get("choices") or []
        if not choices:
            raise ValueError("OpenAI response does not contain choices. Response keys: %s" % list(response_data.keys()))
        message = choices[0].get("message") or {}

        tool_calls = message.get("tool_calls") or []
        if tool_calls:
            first = tool_calls[0]
            function = first.get("function") or {}
            if len(tool_calls) > 1:
                self.logging.warning("Model requested %d tool calls, only '%s' is executed.", len(tool_calls), function.get("name"))
            return ChatCompletion(
                tool_call=ToolInvocationRequest(
                    name=function.get("name", ""),
                    arguments_json=function.get("arguments") or "{}",
                    call_id=first.get("id") or f"call_{uuid.uuid4().hex[:12]}",
                )
            )

        content = message.get("content")
        if content is None:
            raise ValueError("OpenAI response message contains neither content nor tool calls.")
        return ChatCompletion(text=content)
