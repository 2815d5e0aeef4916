from abc import ABC, abstractmethod

from shared.models.owner import Owner


class OwnerStoreInterface(ABC):
    """Profiles of the owners the bridge acts for."""

    @abstractmethod
    async def get(self, owner_id: str) -> Owner | None:
        pass

    @abstractmethod
    async def upsert(self, owner: Owner) -> Owner:
        pass

    @abstractmethod
    async def set_standing_instructions(self, owner_id: str, instructions: str | None) -> Owner:
        """Replace the owner's standing instructions. Unknown owners are created."""
        pass

    async def get_or_create(self, owner_id: str) -> Owner:
        """Return the owner, creating a profile named after the id if it does not exist."""
        owner = await self.get(owner_id)
        if owner is None:
            owner = await self.upsert(Owner(id=owner_id, name=owner_id))
        return owner
