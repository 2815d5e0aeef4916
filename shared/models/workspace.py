"""Records exchanged with the mail, calendar and CRM collaborators."""

from datetime import datetime

from pydantic import BaseModel


class MailMessage(BaseModel):
    """
    A message fetched from the owner's mailbox.

    Attributes:
        id (str): Backend message id.
        thread_id (str | None): Backend thread id, if the backend groups messages.
        sender (str): Value of the From header.
        recipient (str): Value of the To header.
        subject (str): Subject line.
        body (str): Plain-text body.
        received_at (datetime | None): Time the message was received, if known.
    """

    id: str
    thread_id: str | None = None
    sender: str = ""
    recipient: str = ""
    subject: str = ""
    body: str = ""
    received_at: datetime | None = None


class CalendarEvent(BaseModel):
    """
    An event of the owner's primary calendar.

    Attributes:
        id (str): Backend event id.
        title (str): Event summary.
        start (datetime): Start time, timezone-aware.
        end (datetime): End time, timezone-aware.
        description (str | None): Free-text description.
        location (str | None): Free-text location.
        attendees (list[str]): Attendee email addresses.
    """

    id: str
    title: str = ""
    start: datetime
    end: datetime
    description: str | None = None
    location: str | None = None
    attendees: list[str] = []


class Contact(BaseModel):
    """
    A CRM contact.

    Attributes:
        id (str): Backend contact id.
        first_name (str): Given name.
        last_name (str): Family name.
        email (str): Primary email address.
        company (str | None): Company name.
        notes (str | None): Free-text notes.
        last_contacted (str | None): Backend-formatted date of the last contact.
    """

    id: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    company: str | None = None
    notes: str | None = None
    last_contacted: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
