"""Error taxonomy shared by clients, stores and chat services.

Per-tool and per-provider failures are turned into in-band data wherever a
model round trip can still proceed. Only failures that prevent a round trip
escape as exceptions; the ConversationOrchestrator is the last boundary.
"""


class AdvisorBridgeError(Exception):
    """Base class for all errors raised by the bridge."""


class ProviderError(AdvisorBridgeError):
    """Transient failure from the embedding or language-model backend (network, auth, quota, timeout)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class LengthExceeded(AdvisorBridgeError):
    """The embedding backend rejected an input as oversized. Recovered inside the embed client."""


class ArgumentError(AdvisorBridgeError):
    """Malformed or unparseable tool-call arguments."""


class ToolExecutionError(AdvisorBridgeError):
    """Failure inside a tool handler while calling an external collaborator."""


class ValidationError(AdvisorBridgeError):
    """Invalid input at a component boundary (unknown tool name, vector dimension mismatch)."""


class StorageError(AdvisorBridgeError):
    """Failure persisting a Document or ConversationTurn."""
