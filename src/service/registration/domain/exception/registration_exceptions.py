from src.platform.exception.exceptions import (
    ConflictError,
    DomainError,
    InfrastructureError,
    NotFoundError,
)


class InvalidRequestError(DomainError):
    """Malformed identifier, empty user or unknown action"""


class EventNotFoundError(NotFoundError):
    def __init__(self, event_id: object) -> None:
        self.event_id = event_id
        super().__init__(f'Event {event_id} not found')


class CapacityExceededError(ConflictError):
    def __init__(self, event_id: object, *, total_spots: int) -> None:
        self.event_id = event_id
        self.total_spots = total_spots
        super().__init__(f'No available spots for event {event_id} (total_spots={total_spots})')


class StorageError(InfrastructureError):
    """Connection or transaction failure; the transaction has been rolled back"""
