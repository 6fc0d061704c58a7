"""Port interface for cargo persistence."""

from abc import ABC, abstractmethod

from cargoflow.domain.entities.cargo import Cargo


class CargoRepository(ABC):
    @abstractmethod
    async def save(self, cargo: Cargo) -> Cargo:
        ...

    @abstractmethod
    async def get_by_id(self, cargo_id: str) -> Cargo | None:
        ...

    @abstractmethod
    async def update(self, cargo: Cargo, expected_version: int) -> Cargo:
        """Persist *cargo* only if the stored row is still at *expected_version*.

        Raises ConflictError when another writer got there first.
        """
        ...

    @abstractmethod
    async def list_by_client(self, client_id: str) -> list[Cargo]:
        ...
