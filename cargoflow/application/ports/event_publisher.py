"""Port interface for handing domain events to notification collaborators."""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from cargoflow.domain.entities.events import DomainEvent


class EventPublisher(ABC):
    @abstractmethod
    async def publish(self, events: Sequence[DomainEvent]) -> None:
        """Record or dispatch *events* in the order given."""
        ...
