import asyncio

from shared.helper.HelperConfig import HelperConfig
from shared.models.owner import Owner
from shared.stores.OwnerStoreInterface import OwnerStoreInterface


class OwnerStoreMemory(OwnerStoreInterface):
    """In-process owner profiles. Contents are lost on restart."""

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._owners: dict[str, Owner] = {}
        self._lock = asyncio.Lock()

    async def get(self, owner_id: str) -> Owner | None:
        return self._owners.get(owner_id)

    async def upsert(self, owner: Owner) -> Owner:
        async with self._lock:
            self._owners[owner.id] = owner
        return owner

    async def set_standing_instructions(self, owner_id: str, instructions: str | None) -> Owner:
        owner = await self.get_or_create(owner_id)
        text = instructions.strip() if instructions else None
        updated = owner.model_copy(update={"standing_instructions": text or None})
        return await self.upsert(updated)
