from abc import abstractmethod
from datetime import date, datetime, time, timedelta

import pytz

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.owner import Owner
from shared.models.workspace import CalendarEvent

BUSINESS_DAY_START = 9   # first bookable hour
BUSINESS_DAY_END = 18    # hour the last slot ends
SLOT_MINUTES = 30


class CalendarClientInterface(ClientInterface):
    """Primary calendar of the owner.

    Naive datetimes handed to this client are interpreted in the owner
    timezone ``TIMEZONE`` (default Europe/Berlin).
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._access_token = self.get_config_val("ACCESS_TOKEN", default=None, val_type="string")
        self.tz = pytz.timezone(helper_config.get_string_val("TIMEZONE", default="Europe/Berlin"))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "calendar"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="ACCESS_TOKEN", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._access_token}"}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def localize(self, value: datetime) -> datetime:
        """Attach the owner timezone to a naive datetime; aware values are converted to it."""
        if value.tzinfo is None:
            return self.tz.localize(value)
        return value.astimezone(self.tz)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    async def do_list_events(self, owner: Owner, time_min: datetime, time_max: datetime, max_results: int = 50) -> list[CalendarEvent]:
        """List single events overlapping [time_min, time_max], ordered by start time."""
        pass

    @abstractmethod
    async def do_create_event(
        self,
        owner: Owner,
        title: str,
        start: datetime,
        end: datetime,
        attendees: list[str] | None = None,
        description: str | None = None,
    ) -> CalendarEvent:
        pass

    @abstractmethod
    async def do_update_event(
        self,
        owner: Owner,
        event_id: str,
        title: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> CalendarEvent:
        """Change the given fields of an event and return the updated event."""
        pass

    @abstractmethod
    async def do_delete_event(self, owner: Owner, event_id: str) -> None:
        pass

    ##########################################
    ############### SCHEDULING ###############
    ##########################################

    async def find_available_slots(self, owner: Owner, day: date) -> list[datetime]:
        """Return the free half-hour slots of a day between 09:00 and 18:00 local time.

        A slot is occupied when any event covers its start. Event boundaries are
        floored to the half hour, as in the slot grid.
        """
        day_start = self.tz.localize(datetime.combine(day, time.min))
        day_end = self.tz.localize(datetime.combine(day + timedelta(days=1), time.min))
        events = await self.do_list_events(owner, day_start, day_end, max_results=250)

        occupied: set[datetime] = set()
        for event in events:
            current = self.localize(event.start)
            end = self.localize(event.end)
            while current < end:
                floored = current.replace(minute=30 if current.minute >= 30 else 0, second=0, microsecond=0)
                occupied.add(floored.replace(tzinfo=None))
                current += timedelta(minutes=SLOT_MINUTES)

        slots: list[datetime] = []
        for hour in range(BUSINESS_DAY_START, BUSINESS_DAY_END):
            for minute in (0, SLOT_MINUTES):
                slot = datetime.combine(day, time(hour, minute))
                if slot not in occupied:
                    slots.append(self.tz.localize(slot))
        return slots

    async def find_conflicts(self, owner: Owner, start: datetime, end: datetime) -> list[CalendarEvent]:
        """Return the events overlapping the proposed interval."""
        start = self.localize(start)
        end = self.localize(end)
        events = await self.do_list_events(owner, start, end)
        return [event for event in events if self.localize(event.start) < end and self.localize(event.end) > start]
