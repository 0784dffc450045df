import uuid

import attrs

from src.service.registration.domain.exception.registration_exceptions import (
    InvalidRequestError,
)


def _validate_user_id(instance: object, attribute: attrs.Attribute, value: str) -> None:
    if not value or not value.strip():
        raise InvalidRequestError('user_id cannot be empty')
    # PostgreSQL text columns cannot store NUL
    if '\x00' in value:
        raise InvalidRequestError(f'user_id contains a NUL character: {value!r}')


@attrs.frozen
class RegistrationEntity:
    """One registration row; (event_id, user_id) is deliberately not unique"""

    event_id: uuid.UUID
    user_id: str = attrs.field(validator=_validate_user_id)

    @classmethod
    def parse(cls, *, event_id: str | uuid.UUID, user_id: str) -> 'RegistrationEntity':
        if isinstance(event_id, uuid.UUID):
            parsed_event_id = event_id
        else:
            try:
                parsed_event_id = uuid.UUID(str(event_id).strip())
            except (ValueError, AttributeError) as e:
                raise InvalidRequestError(f'Invalid event_id: {event_id!r}') from e
        if not isinstance(user_id, str):
            raise InvalidRequestError(f'Invalid user_id: {user_id!r}')
        return cls(event_id=parsed_event_id, user_id=user_id)
