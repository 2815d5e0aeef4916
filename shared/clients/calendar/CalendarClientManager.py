from shared.clients.ClientManager import ClientManager
from shared.clients.calendar.CalendarClientInterface import CalendarClientInterface


class CalendarClientManager(ClientManager):
    """Manager class to instantiate the optional calendar client (CALENDAR_ENGINE)."""

    client_type = "calendar"
    class_prefix = "CalendarClient"
    required = False

    def get_client(self) -> CalendarClientInterface | None:
        return self.client
