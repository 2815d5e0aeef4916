"""Business tools acting on the owner's mailbox, calendar and CRM.

Every handler catches its own failures and answers with a ``ToolResult``;
nothing raised by a collaborator reaches the ToolCallLoop.
"""

import functools
from datetime import date, datetime, time, timedelta

from services.chat.ToolExecutor import ToolExecutor, ToolSpec
from shared.clients.calendar.CalendarClientInterface import CalendarClientInterface
from shared.clients.crm.CRMClientInterface import CRMClientInterface
from shared.clients.mail.MailClientInterface import MailClientInterface
from shared.errors import ToolExecutionError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperFormat import format_clock_time, format_event_datetime, truncate_with_ellipsis
from shared.models.owner import Owner
from shared.models.tools import (
    CheckCalendarConflictsArgs,
    CreateCalendarEventArgs,
    CreateContactArgs,
    DeleteCalendarEventArgs,
    GetAvailableSlotsArgs,
    GetUpcomingMeetingsArgs,
    ScheduleAppointmentArgs,
    SearchCalendarArgs,
    SearchContactsArgs,
    SendEmailArgs,
    ToolResult,
    UpdateCalendarEventArgs,
)
from shared.models.workspace import CalendarEvent

SEARCH_DAYS_BACK = 7
SEARCH_DAYS_AHEAD = 30
EVENT_DESCRIPTION_PREVIEW = 100

MEETING_REQUEST_SUBJECT = "Meeting Request - Let's Schedule a Time"
MEETING_REQUEST_BODY = (
    "Hi %s,\n\n"
    "I hope this email finds you well. I'd like to schedule a meeting with you.\n\n"
    "I have the following times available:\n%s\n\n"
    "Please let me know which time works best for you, or if you'd prefer a different time.\n\n"
    "Looking forward to hearing from you!\n\n"
    "Best regards"
)


class CollaboratorNotConnected(ToolExecutionError):
    """No client is configured for the collaborator a tool needs."""


def tool_handler(action: str):
    """Turn any exception raised by a handler into ``Failed to <action>: <reason>``."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self: "WorkspaceTools", owner: Owner, args) -> ToolResult:
            try:
                return await func(self, owner, args)
            except CollaboratorNotConnected as e:
                return ToolResult.fail(str(e))
            except Exception as e:
                self.logging.error("Failed to %s for owner '%s': %s", action, owner.id, e)
                return ToolResult.fail(f"Failed to {action}: {e}")

        return wrapper

    return decorator


def format_event_summary(event: CalendarEvent) -> str:
    lines = [
        f"Event: {event.title or 'No title'}",
        f"Start: {format_event_datetime(event.start)}",
        f"End: {format_event_datetime(event.end)}",
    ]
    if event.attendees:
        lines.append(f"Attendees: {', '.join(event.attendees)}")
    if event.description:
        lines.append(f"Description: {truncate_with_ellipsis(event.description, EVENT_DESCRIPTION_PREVIEW)}")
    return "\n".join(lines)


def event_matches_query(event: CalendarEvent, query: str) -> bool:
    needle = query.lower()
    haystack = [event.title or "", event.description or "", *event.attendees]
    return any(needle in value.lower() for value in haystack)


class WorkspaceTools:
    def __init__(
        self,
        helper_config: HelperConfig,
        mail_client: MailClientInterface | None = None,
        calendar_client: CalendarClientInterface | None = None,
        crm_client: CRMClientInterface | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._mail_client = mail_client
        self._calendar_client = calendar_client
        self._crm_client = crm_client

    ##########################################
    ############## REGISTRATION ##############
    ##########################################

    def register_all(self, executor: ToolExecutor) -> None:
        """Register the static tool catalog with the executor."""
        specs = [
            ("sendEmail", "Send an email to a contact", "Send emails to clients", SendEmailArgs, self.send_email),
            (
                "scheduleAppointment",
                "Schedule an appointment with a contact by sending them an email with proposed times",
                "Schedule appointments with clients",
                ScheduleAppointmentArgs,
                self.schedule_appointment,
            ),
            ("createContact", "Create a new contact in the CRM system", "Create new contacts in CRM", CreateContactArgs, self.create_contact),
            (
                "searchCalendar",
                "Search for calendar events by query, date range, or attendees",
                "Search calendar events",
                SearchCalendarArgs,
                self.search_calendar,
            ),
            ("getAvailableSlots", "Get available time slots for a specific date", "Get available time slots for a date", GetAvailableSlotsArgs, self.get_available_slots),
            ("createCalendarEvent", "Create a new calendar event", "Create calendar events", CreateCalendarEventArgs, self.create_calendar_event),
            (
                "checkCalendarConflicts",
                "Check for calendar conflicts at a proposed time",
                "Check for scheduling conflicts",
                CheckCalendarConflictsArgs,
                self.check_calendar_conflicts,
            ),
            (
                "getUpcomingMeetings",
                "Get upcoming meetings for the next specified number of days",
                "Get upcoming meetings",
                GetUpcomingMeetingsArgs,
                self.get_upcoming_meetings,
            ),
            ("updateCalendarEvent", "Update an existing calendar event", "Update calendar events", UpdateCalendarEventArgs, self.update_calendar_event),
            ("deleteCalendarEvent", "Delete a calendar event", "Delete calendar events", DeleteCalendarEventArgs, self.delete_calendar_event),
            ("searchContacts", "Search for contacts in the CRM system", "Search for contacts in CRM", SearchContactsArgs, self.search_contacts),
        ]
        for name, description, prompt_hint, args_model, handler in specs:
            executor.register(ToolSpec(name=name, description=description, prompt_hint=prompt_hint, args_model=args_model, handler=handler))

    ##########################################
    ############# COLLABORATORS ##############
    ##########################################

    def _mail(self) -> MailClientInterface:
        if self._mail_client is None:
            raise CollaboratorNotConnected("Mail is not connected.")
        return self._mail_client

    def _calendar(self) -> CalendarClientInterface:
        if self._calendar_client is None:
            raise CollaboratorNotConnected("Calendar is not connected.")
        return self._calendar_client

    def _crm(self) -> CRMClientInterface:
        if self._crm_client is None:
            raise CollaboratorNotConnected("CRM is not connected.")
        return self._crm_client

    ##########################################
    ################## MAIL ##################
    ##########################################

    async def _send(self, owner: Owner, to: str, subject: str, body: str) -> str:
        message_id = await self._mail().do_send_email(owner, to, subject, body)
        return "Email sent successfully to %s with subject '%s'. Message ID: %s" % (to, subject, message_id)

    @tool_handler("send email")
    async def send_email(self, owner: Owner, args: SendEmailArgs) -> ToolResult:
        return ToolResult.ok(await self._send(owner, args.to, args.subject, args.body))

    @tool_handler("initiate scheduling")
    async def schedule_appointment(self, owner: Owner, args: ScheduleAppointmentArgs) -> ToolResult:
        contacts = await self._crm().do_search_contacts(owner, args.contact_name)
        if not contacts or not contacts[0].email:
            return ToolResult.ok(
                "Contact '%s' not found. Please create the contact first or provide their email address." % args.contact_name
            )

        contact_email = contacts[0].email
        body = MEETING_REQUEST_BODY % (args.contact_name, args.proposed_times)
        sent = await self._send(owner, contact_email, MEETING_REQUEST_SUBJECT, body)
        return ToolResult.ok("Appointment request sent to %s (%s). %s" % (args.contact_name, contact_email, sent))

    ##########################################
    ################## CRM ###################
    ##########################################

    @tool_handler("create contact")
    async def create_contact(self, owner: Owner, args: CreateContactArgs) -> ToolResult:
        crm = self._crm()
        contact = await crm.do_create_contact(owner, args.name, args.email, args.company, args.notes)
        return ToolResult.ok("Contact '%s' created successfully in %s with ID: %s" % (args.name, crm.get_engine_name().capitalize(), contact.id))

    @tool_handler("search contacts")
    async def search_contacts(self, owner: Owner, args: SearchContactsArgs) -> ToolResult:
        contacts = await self._crm().do_search_contacts(owner, args.query)
        if not contacts:
            return ToolResult.ok("No contacts found matching '%s'" % args.query)

        blocks = []
        for contact in contacts:
            lines = [f"Name: {contact.full_name}", f"Email: {contact.email}"]
            if contact.company:
                lines.append(f"Company: {contact.company}")
            if contact.notes:
                lines.append(f"Notes: {contact.notes}")
            blocks.append("\n".join(lines))
        return ToolResult.ok(f"Found {len(contacts)} contact(s):\n\n" + "\n\n".join(blocks))

    ##########################################
    ################ CALENDAR ################
    ##########################################

    def _day_start(self, day: date) -> datetime:
        return self._calendar().tz.localize(datetime.combine(day, time.min))

    async def _search_events(self, owner: Owner, query: str | None, time_min: datetime, time_max: datetime) -> str:
        events = await self._calendar().do_list_events(owner, time_min, time_max, max_results=50)
        if not events:
            return "No events found for the specified criteria."

        if query:
            events = [event for event in events if event_matches_query(event, query)]
            if not events:
                return "No events found matching '%s' in the specified time period." % query

        summaries = "\n\n".join(format_event_summary(event) for event in events)
        return f"Found {len(events)} event(s):\n\n{summaries}"

    @tool_handler("search calendar")
    async def search_calendar(self, owner: Owner, args: SearchCalendarArgs) -> ToolResult:
        now = self._calendar().now()
        time_min = self._day_start(args.start_date) if args.start_date else now - timedelta(days=SEARCH_DAYS_BACK)
        # end date is inclusive
        time_max = self._day_start(args.end_date + timedelta(days=1)) if args.end_date else now + timedelta(days=SEARCH_DAYS_AHEAD)
        return ToolResult.ok(await self._search_events(owner, args.query, time_min, time_max))

    @tool_handler("get upcoming meetings")
    async def get_upcoming_meetings(self, owner: Owner, args: GetUpcomingMeetingsArgs) -> ToolResult:
        today = self._calendar().now().date()
        time_min = self._day_start(today)
        time_max = self._day_start(today + timedelta(days=args.days + 1))
        return ToolResult.ok(await self._search_events(owner, None, time_min, time_max))

    @tool_handler("get available slots")
    async def get_available_slots(self, owner: Owner, args: GetAvailableSlotsArgs) -> ToolResult:
        slots = await self._calendar().find_available_slots(owner, args.day)
        day = args.day.isoformat()
        if not slots:
            return ToolResult.ok("No available slots found for %s" % day)
        return ToolResult.ok("Available time slots for %s: %s" % (day, ", ".join(format_clock_time(slot) for slot in slots)))

    @tool_handler("create calendar event")
    async def create_calendar_event(self, owner: Owner, args: CreateCalendarEventArgs) -> ToolResult:
        event = await self._calendar().do_create_event(owner, args.title, args.start_time, args.end_time, attendees=args.attendees)
        return ToolResult.ok(
            "Event '%s' created successfully for %s. Event ID: %s" % (args.title, args.start_time.isoformat(), event.id)
        )

    @tool_handler("check conflicts")
    async def check_calendar_conflicts(self, owner: Owner, args: CheckCalendarConflictsArgs) -> ToolResult:
        conflicts = await self._calendar().find_conflicts(owner, args.start_time, args.end_time)
        if not conflicts:
            return ToolResult.ok("No conflicts found for the proposed time.")
        return ToolResult.ok("Found conflicts:\n" + "\n".join(format_event_summary(event) for event in conflicts))

    @tool_handler("update calendar event")
    async def update_calendar_event(self, owner: Owner, args: UpdateCalendarEventArgs) -> ToolResult:
        event = await self._calendar().do_update_event(
            owner,
            args.event_id,
            title=args.new_title,
            start=args.new_start_time,
            end=args.new_end_time,
        )
        return ToolResult.ok("Event updated successfully: %s" % event.title)

    @tool_handler("delete calendar event")
    async def delete_calendar_event(self, owner: Owner, args: DeleteCalendarEventArgs) -> ToolResult:
        await self._calendar().do_delete_event(owner, args.event_id)
        return ToolResult.ok("Event deleted successfully")
