from pydantic import BaseModel


class Owner(BaseModel):
    """
    The advisor on whose behalf messages are processed and tools are executed.

    Attributes:
        id (str): Owner identifier. Scopes documents and conversation turns.
        name (str): Display name, written into the system prompt.
        email (str): Mailbox address, written into the system prompt and used as sender.
        standing_instructions (str | None): Free-text instructions the assistant must remember across sessions.
    """

    id: str
    name: str
    email: str = ""
    standing_instructions: str | None = None
