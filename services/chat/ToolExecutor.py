"""Registry of the business tools the language model may call.

Tools are registered once at startup as ``ToolSpec`` entries (name, argument
schema, handler). The registry produces the tool catalog offered to the
model, the one-line tool descriptions written into the system prompt, and
dispatches a requested call to its handler after validating the arguments.
"""

from typing import Awaitable, Callable

import pydantic
from pydantic import BaseModel, ConfigDict

from shared.errors import ArgumentError
from shared.helper.HelperConfig import HelperConfig
from shared.models.owner import Owner
from shared.models.tools import ToolArguments, ToolResult

ToolHandler = Callable[[Owner, ToolArguments], Awaitable[ToolResult]]


class ToolSpec(BaseModel):
    """
    One registered tool.

    Attributes:
        name (str): Tool name as seen by the model, e.g. "sendEmail".
        description (str): Description sent with the function schema.
        prompt_hint (str): Short description written into the system prompt.
        args_model (type[ToolArguments]): Schema the raw arguments are validated against.
        handler (ToolHandler): Coroutine ``(owner, args) -> ToolResult``. Must not raise.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    description: str
    prompt_hint: str
    args_model: type[ToolArguments]
    handler: ToolHandler

    @property
    def signature(self) -> str:
        params = [field.alias or field_name for field_name, field in self.args_model.model_fields.items()]
        return f"{self.name}({', '.join(params)})"

    def to_function_schema(self) -> dict:
        parameters = self.args_model.model_json_schema(by_alias=True)
        parameters.pop("title", None)
        parameters.setdefault("required", [])
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters,
            },
        }


def _format_validation_error(error: pydantic.ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(loc) for loc in item.get("loc", ())) or "arguments"
        parts.append(f"{location}: {item.get('msg', 'invalid value')}")
    return "; ".join(parts)


class ToolExecutor:
    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()
        self._tools: dict[str, ToolSpec] = {}

    ##########################################
    ############### REGISTRY #################
    ##########################################

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ValueError(f"Tool '{spec.name}' is already registered.")
        self._tools[spec.name] = spec
        self.logging.debug("Registered tool '%s'.", spec.signature)

    def is_registered(self, name: str) -> bool:
        return name in self._tools

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_tool_catalog(self) -> list[dict]:
        """Return the registered tools as OpenAI-style function schemas, in registration order."""
        return [spec.to_function_schema() for spec in self._tools.values()]

    def describe_tools(self) -> list[str]:
        """Return one prompt line per tool, e.g. ``- sendEmail(to, subject, body): Send emails to clients``."""
        return [f"- {spec.signature}: {spec.prompt_hint}" for spec in self._tools.values()]

    def get_tool_names(self) -> list[str]:
        return list(self._tools.keys())

    ##########################################
    ############### DISPATCH #################
    ##########################################

    def validate_arguments(self, name: str, arguments: dict) -> ToolArguments:
        """Validate raw arguments against the tool's schema.

        Raises:
            ArgumentError: If the arguments do not match the schema.
        """
        spec = self._tools[name]
        try:
            return spec.args_model.model_validate(arguments)
        except pydantic.ValidationError as e:
            raise ArgumentError(f"Invalid arguments for {name}: {_format_validation_error(e)}") from e

    async def dispatch(self, owner: Owner, name: str, arguments: dict) -> str:
        """Run a tool and return the text fed back to the model.

        An unregistered name yields the plain string ``Unknown function: <name>``
        instead of the JSON failure envelope.

        Args:
            owner (Owner): Owner on whose behalf the tool runs.
            name (str): Requested tool name.
            arguments (dict): Parsed JSON arguments.

        Returns:
            str: The rendered ToolResult.
        """
        if name not in self._tools:
            self.logging.warning("Model requested unknown tool '%s'.", name)
            return f"Unknown function: {name}"

        try:
            args = self.validate_arguments(name, arguments)
        except ArgumentError as e:
            self.logging.warning("%s", e)
            return ToolResult.fail(str(e)).render()

        self.logging.info("Executing tool '%s' for owner '%s'.", name, owner.id, color="blue")
        result = await self._tools[name].handler(owner, args)
        if not result.success:
            self.logging.warning("Tool '%s' failed: %s", name, result.error)
        return result.render()
