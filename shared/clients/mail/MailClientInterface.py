from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.owner import Owner
from shared.models.workspace import MailMessage


class MailClientInterface(ClientInterface):
    """Mailbox of the owner: sends messages and lists recent ones for indexing."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._access_token = self.get_config_val("ACCESS_TOKEN", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "mail"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="ACCESS_TOKEN", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._access_token}"}

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    async def do_send_email(self, owner: Owner, to: str, subject: str, body: str) -> str:
        """Send a plain-text email on behalf of the owner.

        Returns:
            str: The backend id of the sent message.

        Raises:
            ProviderError: If the backend rejects the message or is unreachable.
        """
        pass

    @abstractmethod
    async def do_fetch_recent_messages(self, owner: Owner, limit: int = 100) -> list[MailMessage]:
        """Fetch up to ``limit`` of the most recent messages of the owner's mailbox."""
        pass
