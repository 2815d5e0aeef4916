from shared.clients.ClientManager import ClientManager
from shared.clients.crm.CRMClientInterface import CRMClientInterface


class CRMClientManager(ClientManager):
    """Manager class to instantiate the optional CRM client (CRM_ENGINE)."""

    client_type = "crm"
    class_prefix = "CRMClient"
    required = False

    def get_client(self) -> CRMClientInterface | None:
        return self.client
