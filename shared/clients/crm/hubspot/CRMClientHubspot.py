from shared.clients.crm.CRMClientInterface import CRMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.owner import Owner
from shared.models.workspace import Contact

CONTACT_PROPERTIES = ["firstname", "lastname", "email", "company", "notes_last_contacted"]


class CRMClientHubspot(CRMClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://api.hubapi.com", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Hubspot"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            *super()._get_required_config(),
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api.hubapi.com"),
        ]

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_contacts(self) -> str:
        return "/crm/v3/objects/contacts"

    def _get_endpoint_healthcheck(self) -> str:
        return "/crm/v3/objects/contacts?limit=1"

    ##########################################
    ################# OTHER ##################
    ##########################################

    @staticmethod
    def _parse_contact(raw: dict) -> Contact:
        props = raw.get("properties") or {}
        return Contact(
            id=str(raw.get("id", "")),
            first_name=props.get("firstname") or "",
            last_name=props.get("lastname") or "",
            email=props.get("email") or "",
            company=props.get("company") or None,
            notes=props.get("notes_last_contacted") or None,
        )

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_create_contact(self, owner: Owner, name: str, email: str, company: str | None = None, notes: str | None = None) -> Contact:
        first_name, _, last_name = name.strip().partition(" ")
        properties = {"firstname": first_name, "email": email}
        if last_name:
            properties["lastname"] = last_name.strip()
        if company:
            properties["company"] = company
        if notes:
            properties["notes_last_contacted"] = notes

        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_contacts(),
            json={"properties": properties},
            raise_on_error=True,
        )
        contact = self._parse_contact(response.json())
        self.logging.info("Created CRM contact '%s' (id %s).", name, contact.id)
        return contact

    async def do_search_contacts(self, owner: Owner, query: str, limit: int = 10) -> list[Contact]:
        response = await self.do_request(
            method="POST",
            endpoint=f"{self._get_endpoint_contacts()}/search",
            json={"query": query, "properties": CONTACT_PROPERTIES, "limit": limit},
            raise_on_error=True,
        )
        return [self._parse_contact(item) for item in response.json().get("results") or []]

    async def do_list_contacts(self, owner: Owner, limit: int = 100) -> list[Contact]:
        response = await self.do_request(
            method="GET",
            endpoint=self._get_endpoint_contacts(),
            params={"properties": ",".join(CONTACT_PROPERTIES), "limit": limit},
            raise_on_error=True,
        )
        return [self._parse_contact(item) for item in response.json().get("results") or []]
