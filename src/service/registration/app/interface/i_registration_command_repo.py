from abc import ABC, abstractmethod

from src.service.registration.domain.entity.event_entity import EventEntity
from src.service.registration.domain.entity.registration_entity import RegistrationEntity


class IRegistrationCommandRepo(ABC):
    """Transactional write side of event registrations"""

    @abstractmethod
    async def register(self, *, registration: RegistrationEntity) -> EventEntity:
        """
        Insert a registration and increment the event's registered count.

        Runs in one transaction holding an exclusive lock on the event row.

        Raises:
            EventNotFoundError: no such event
            CapacityExceededError: registered_count >= total_spots
            StorageError: connection or transaction failure

        Returns:
            Event snapshot after the increment
        """
        pass

    @abstractmethod
    async def unregister(self, *, registration: RegistrationEntity) -> int:
        """
        Delete matching registrations and decrement the registered count,
        never below zero. Succeeds even when nothing matched.

        Raises:
            StorageError: connection or transaction failure

        Returns:
            Number of deleted registration rows
        """
        pass
