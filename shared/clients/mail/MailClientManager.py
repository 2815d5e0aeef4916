from shared.clients.ClientManager import ClientManager
from shared.clients.mail.MailClientInterface import MailClientInterface


class MailClientManager(ClientManager):
    """Manager class to instantiate the optional mail client (MAIL_ENGINE)."""

    client_type = "mail"
    class_prefix = "MailClient"
    required = False

    def get_client(self) -> MailClientInterface | None:
        return self.client
