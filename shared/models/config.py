from typing import Literal

from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    A configuration key a client needs before it can boot.

    The key is relative to the client, ``ClientInterface`` prefixes it with
    ``<TYPE>_<ENGINE>_`` (``API_KEY`` of the openai llm client reads
    ``LLM_OPENAI_API_KEY``).

    Attributes:
        env_key (str): Client-relative key name.
        val_type (str): How the raw value is parsed.
        default (str | int | float | bool | list | None): Fallback value. ``None`` marks the key as required.
    """

    env_key: str
    val_type: Literal["string", "number", "bool", "list"] = "string"
    default: str | int | float | bool | list | None = None
