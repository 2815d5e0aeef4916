"""Tool-call models.

Hierarchy:
  ToolInvocationRequest  a structured tool call as requested by the language model.
  ToolResult             the uniform result contract every tool handler emits.
  ToolArguments          base of the per-tool argument schemas validated at dispatch.
"""

import json
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ToolInvocationRequest(BaseModel):
    """A tool call produced by the language-model backend.

    Never constructed by the orchestrator itself, only by LLM clients while
    parsing a backend response.

    Attributes:
        name:           Tool name as requested by the model (e.g. "sendEmail").
        arguments_json: Raw JSON argument string. Parsed by the ToolCallLoop.
        call_id:        Backend-assigned id of the call, echoed back with the result.
    """

    name: str
    arguments_json: str = "{}"
    call_id: str | None = None


class ToolResult(BaseModel):
    """Uniform result of a tool handler.

    Either a success payload (human-readable text or JSON) or the structured
    failure envelope {"success": false, "error": "<message>"}.
    """

    success: bool
    payload: str | None = None
    error: str | None = None

    @classmethod
    def ok(cls, payload: str) -> "ToolResult":
        return cls(success=True, payload=payload)

    @classmethod
    def fail(cls, error: str) -> "ToolResult":
        return cls(success=False, error=error)

    def render(self) -> str:
        """Return the text fed back to the language model."""
        if self.success:
            return self.payload or ""
        return json.dumps({"success": False, "error": self.error or "Unknown error"})


##########################################
########### ARGUMENT SCHEMAS #############
##########################################

class ToolArguments(BaseModel):
    """Base for tool argument schemas. Field names are exposed in camelCase to the model."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def _split_addresses(value):
    if value is None or isinstance(value, list):
        return value
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


class SendEmailArgs(ToolArguments):
    to: str = Field(description="Recipient email address")
    subject: str = Field(description="Email subject line")
    body: str = Field(description="Email body content")


class ScheduleAppointmentArgs(ToolArguments):
    contact_name: str = Field(description="Name of the contact to schedule with")
    proposed_times: str = Field(description="Proposed meeting times and dates")

    @field_validator("proposed_times", mode="before")
    @classmethod
    def join_times(cls, value):
        if isinstance(value, list):
            return "\n".join(f"- {item}" for item in value)
        return value


class CreateContactArgs(ToolArguments):
    name: str = Field(description="Contact's full name")
    email: str = Field(description="Contact's email address")
    company: str | None = Field(default=None, description="Contact's company name")
    notes: str | None = Field(default=None, description="Additional notes about the contact")


class SearchCalendarArgs(ToolArguments):
    query: str | None = Field(default=None, description="Search query for calendar events")
    start_date: date | None = Field(default=None, description="Start date for search (YYYY-MM-DD format)")
    end_date: date | None = Field(default=None, description="End date for search (YYYY-MM-DD format)")


class GetAvailableSlotsArgs(ToolArguments):
    day: date = Field(alias="date", description="Date to check availability (YYYY-MM-DD format)")


class CreateCalendarEventArgs(ToolArguments):
    title: str = Field(description="Event title")
    start_time: datetime = Field(description="Start time (YYYY-MM-DDTHH:MM:SS format)")
    end_time: datetime = Field(description="End time (YYYY-MM-DDTHH:MM:SS format)")
    attendees: list[str] | None = Field(default=None, description="Comma-separated list of attendee email addresses")

    @field_validator("attendees", mode="before")
    @classmethod
    def split_attendees(cls, value):
        return _split_addresses(value)


class CheckCalendarConflictsArgs(ToolArguments):
    start_time: datetime = Field(description="Proposed start time (YYYY-MM-DDTHH:MM:SS format)")
    end_time: datetime = Field(description="Proposed end time (YYYY-MM-DDTHH:MM:SS format)")


class GetUpcomingMeetingsArgs(ToolArguments):
    days: int = Field(default=7, ge=1, le=365, description="Number of days ahead to look (default 7)")


class UpdateCalendarEventArgs(ToolArguments):
    event_id: str = Field(description="Calendar event ID to update")
    new_title: str | None = Field(default=None, description="New event title (optional)")
    new_start_time: datetime | None = Field(default=None, description="New start time in YYYY-MM-DDTHH:MM:SS format (optional)")
    new_end_time: datetime | None = Field(default=None, description="New end time in YYYY-MM-DDTHH:MM:SS format (optional)")


class DeleteCalendarEventArgs(ToolArguments):
    event_id: str = Field(description="Calendar event ID to delete")


class SearchContactsArgs(ToolArguments):
    query: str = Field(description="Search query for contacts (name, email, or company)")
