import json

import httpx
import pytest

from conftest import make_helper_config
from services.chat.ToolExecutor import ToolExecutor
from services.chat.WorkspaceTools import WorkspaceTools
from shared.clients.calendar.google.CalendarClientGoogle import CalendarClientGoogle
from shared.models.owner import Owner

OWNER = Owner(id="advisor-1", name="Jane Advisor", email="jane@example.com")

EVENTS = [
    {
        "id": "evt-1",
        "summary": "Portfolio review",
        "start": {"dateTime": "2025-03-04T10:00:00+01:00"},
        "end": {"dateTime": "2025-03-04T11:00:00+01:00"},
        "attendees": [{"email": "bob@example.com"}],
        "description": "Quarterly review of the bond allocation",
    },
    {
        "id": "evt-2",
        "summary": "Lunch",
        "start": {"dateTime": "2025-03-04T12:00:00+01:00"},
        "end": {"dateTime": "2025-03-04T12:45:00+01:00"},
    },
]


async def _calendar_executor(handler) -> tuple[ToolExecutor, CalendarClientGoogle]:
    helper_config = make_helper_config(CALENDAR_GOOGLE_ACCESS_TOKEN="ya29.test")
    calendar = CalendarClientGoogle(helper_config=helper_config)
    await calendar.boot(transport=httpx.MockTransport(handler))
    executor = ToolExecutor(helper_config=helper_config)
    WorkspaceTools(helper_config=helper_config, calendar_client=calendar).register_all(executor)
    return executor, calendar


def _list_handler(events):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer ya29.test"
        assert request.url.path == "/calendar/v3/calendars/primary/events"
        return httpx.Response(200, json={"items": events})

    return handler


@pytest.mark.asyncio
async def test_available_slots_skip_occupied_half_hours():
    executor, calendar = await _calendar_executor(_list_handler(EVENTS))
    result = await executor.dispatch(OWNER, "getAvailableSlots", {"date": "2025-03-04"})

    assert result.startswith("Available time slots for 2025-03-04: 9:00 AM, 9:30 AM, 11:00 AM, 11:30 AM, 1:00 PM")
    assert "10:00 AM" not in result
    assert "12:30 PM" not in result
    assert result.endswith("5:30 PM")
    await calendar.close()


@pytest.mark.asyncio
async def test_search_calendar_filters_on_attendees():
    executor, calendar = await _calendar_executor(_list_handler(EVENTS))
    result = await executor.dispatch(OWNER, "searchCalendar", {"query": "bob", "startDate": "2025-03-01", "endDate": "2025-03-07"})

    assert result.startswith("Found 1 event(s):\n\nEvent: Portfolio review")
    assert "Start: Mar 4, 2025 at 10:00 AM" in result
    assert "Attendees: bob@example.com" in result
    await calendar.close()


@pytest.mark.asyncio
async def test_search_calendar_without_matches():
    executor, calendar = await _calendar_executor(_list_handler(EVENTS))
    result = await executor.dispatch(OWNER, "searchCalendar", {"query": "golf"})
    assert result == "No events found matching 'golf' in the specified time period."
    await calendar.close()


@pytest.mark.asyncio
async def test_upcoming_meetings_without_events():
    executor, calendar = await _calendar_executor(_list_handler([]))
    assert await executor.dispatch(OWNER, "getUpcomingMeetings", {}) == "No events found for the specified criteria."
    await calendar.close()


@pytest.mark.asyncio
async def test_conflicts_are_reported():
    executor, calendar = await _calendar_executor(_list_handler(EVENTS))
    result = await executor.dispatch(OWNER, "checkCalendarConflicts", {"startTime": "2025-03-04T10:30:00", "endTime": "2025-03-04T11:30:00"})
    assert result.startswith("Found conflicts:\nEvent: Portfolio review")
    assert "Lunch" not in result
    await calendar.close()


@pytest.mark.asyncio
async def test_create_event_splits_attendees():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        bodies.append(body)
        return httpx.Response(200, json={"id": "evt-9", **body})

    executor, calendar = await _calendar_executor(handler)
    result = await executor.dispatch(OWNER, "createCalendarEvent", {
        "title": "Kickoff",
        "startTime": "2025-03-05T09:00:00",
        "endTime": "2025-03-05T10:00:00",
        "attendees": "bob@example.com, alice@example.com",
    })

    assert result == "Event 'Kickoff' created successfully for 2025-03-05T09:00:00. Event ID: evt-9"
    assert bodies[0]["attendees"] == [{"email": "bob@example.com"}, {"email": "alice@example.com"}]
    assert bodies[0]["start"]["timeZone"] == "Europe/Berlin"
    await calendar.close()


@pytest.mark.asyncio
async def test_backend_failure_becomes_failure_envelope():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="backend down")

    executor, calendar = await _calendar_executor(handler)
    result = json.loads(await executor.dispatch(OWNER, "deleteCalendarEvent", {"eventId": "evt-1"}))
    assert result["success"] is False
    assert result["error"].startswith("Failed to delete calendar event:")
    await calendar.close()
