import uuid

import attrs


def _validate_non_negative(instance: object, attribute: attrs.Attribute, value: int) -> None:
    if value < 0:
        raise ValueError(f'Event {attribute.name} cannot be negative')


@attrs.define
class EventEntity:
    """Capacity snapshot of an event as seen inside a registration transaction"""

    id: uuid.UUID
    total_spots: int = attrs.field(validator=_validate_non_negative)
    registered_count: int = attrs.field(validator=_validate_non_negative)

    @property
    def available_spots(self) -> int:
        return max(self.total_spots - self.registered_count, 0)

    @property
    def is_full(self) -> bool:
        return self.registered_count >= self.total_spots
