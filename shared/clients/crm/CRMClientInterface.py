from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.owner import Owner
from shared.models.workspace import Contact


class CRMClientInterface(ClientInterface):
    """Contact book of the owner's CRM."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._access_token = self.get_config_val("ACCESS_TOKEN", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "crm"

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
    async def do_create_contact(self, owner: Owner, name: str, email: str, company: str | None = None, notes: str | None = None) -> Contact:
        pass

    @abstractmethod
    async def do_search_contacts(self, owner: Owner, query: str, limit: int = 10) -> list[Contact]:
        """Full-text search over name, email and company."""
        pass

    @abstractmethod
    async def do_list_contacts(self, owner: Owner, limit: int = 100) -> list[Contact]:
        pass
