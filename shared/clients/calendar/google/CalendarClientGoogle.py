from datetime import date, datetime, time
from urllib.parse import quote

from shared.clients.calendar.CalendarClientInterface import CalendarClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.owner import Owner
from shared.models.workspace import CalendarEvent

DEFAULT_DESCRIPTION = "Created by Financial Advisor AI Assistant"


class CalendarClientGoogle(CalendarClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://www.googleapis.com/calendar/v3", val_type="string")
        self._calendar_id = self.get_config_val("CALENDAR_ID", default="primary", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Google"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            *super()._get_required_config(),
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://www.googleapis.com/calendar/v3"),
            EnvConfig(env_key="CALENDAR_ID", val_type="string", default="primary"),
        ]

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_events(self) -> str:
        return f"/calendars/{quote(self._calendar_id, safe='')}/events"

    def _get_endpoint_healthcheck(self) -> str:
        return f"/calendars/{quote(self._calendar_id, safe='')}"

    ##########################################
    ################# OTHER ##################
    ##########################################

    def _parse_event_time(self, raw: dict | None) -> datetime:
        raw = raw or {}
        if raw.get("dateTime"):
            return self.localize(datetime.fromisoformat(raw["dateTime"].replace("Z", "+00:00")))
        if raw.get("date"):
            # all-day events carry a date only
            return self.tz.localize(datetime.combine(date.fromisoformat(raw["date"]), time.min))
        return self.now()

    def _parse_event(self, raw: dict) -> CalendarEvent:
        return CalendarEvent(
            id=raw.get("id", ""),
            title=raw.get("summary") or "",
            start=self._parse_event_time(raw.get("start")),
            end=self._parse_event_time(raw.get("end")),
            description=raw.get("description"),
            location=raw.get("location"),
            attendees=[a["email"] for a in raw.get("attendees") or [] if a.get("email")],
        )

    def _format_event_time(self, value: datetime) -> dict:
        return {"dateTime": self.localize(value).isoformat(), "timeZone": self.tz.zone}

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_list_events(self, owner: Owner, time_min: datetime, time_max: datetime, max_results: int = 50) -> list[CalendarEvent]:
        response = await self.do_request(
            method="GET",
            endpoint=self._get_endpoint_events(),
            params={
                "timeMin": self.localize(time_min).isoformat(),
                "timeMax": self.localize(time_max).isoformat(),
                "orderBy": "startTime",
                "singleEvents": "true",
                "maxResults": max_results,
            },
            raise_on_error=True,
        )
        return [self._parse_event(item) for item in response.json().get("items") or []]

    async def do_create_event(
        self,
        owner: Owner,
        title: str,
        start: datetime,
        end: datetime,
        attendees: list[str] | None = None,
        description: str | None = None,
    ) -> CalendarEvent:
        body = {
            "summary": title,
            "description": description or DEFAULT_DESCRIPTION,
            "start": self._format_event_time(start),
            "end": self._format_event_time(end),
        }
        if attendees:
            body["attendees"] = [{"email": email} for email in attendees]

        response = await self.do_request(method="POST", endpoint=self._get_endpoint_events(), json=body, raise_on_error=True)
        event = self._parse_event(response.json())
        self.logging.info("Created calendar event '%s' (id %s).", event.title, event.id)
        return event

    async def do_update_event(
        self,
        owner: Owner,
        event_id: str,
        title: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> CalendarEvent:
        body: dict = {}
        if title:
            body["summary"] = title
        if start is not None:
            body["start"] = self._format_event_time(start)
        if end is not None:
            body["end"] = self._format_event_time(end)

        response = await self.do_request(
            method="PATCH",
            endpoint=f"{self._get_endpoint_events()}/{quote(event_id, safe='')}",
            json=body,
            raise_on_error=True,
        )
        return self._parse_event(response.json())

    async def do_delete_event(self, owner: Owner, event_id: str) -> None:
        await self.do_request(
            method="DELETE",
            endpoint=f"{self._get_endpoint_events()}/{quote(event_id, safe='')}",
            raise_on_error=True,
        )
        self.logging.info("Deleted calendar event %s.", event_id)
