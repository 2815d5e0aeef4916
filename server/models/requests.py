from pydantic import BaseModel, Field


class ChatMessageRequest(BaseModel):
    owner_id: str = Field(min_length=1)
    session_id: str = Field(min_length=1)
    message: str = Field(min_length=1)


class InstructionsRequest(BaseModel):
    owner_id: str = Field(min_length=1)
    instructions: str | None = None


class OwnerRequest(BaseModel):
    name: str = Field(min_length=1)
    email: str = ""
    standing_instructions: str | None = None
