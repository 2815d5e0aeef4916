"""Backend-independent language-model response model."""

from pydantic import BaseModel

from shared.models.tools import ToolInvocationRequest


class ChatCompletion(BaseModel):
    """Result of one completion round.

    Exactly one of the two fields is meaningful: either the backend answered
    with text, or it requested a tool invocation.

    Attributes:
        text:      Assistant reply text, if any.
        tool_call: The first tool invocation requested by the backend, if any.
    """

    text: str | None = None
    tool_call: ToolInvocationRequest | None = None

    @property
    def is_tool_call(self) -> bool:
        return self.tool_call is not None
