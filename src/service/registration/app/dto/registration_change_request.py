"""
Registration Change Request DTO

Decoded body of one queued registration change:
    {"eventId": "<uuid>", "userId": "<opaque>", "action": "Register" | "Unregister"}

Keys are matched case-insensitively and ignoring underscores, so producers
sending "EventId" or "event_id" are accepted as well.
"""

from typing import Any

import attrs
import orjson

from src.service.registration.domain.enum.registration_action import RegistrationAction
from src.service.registration.domain.exception.registration_exceptions import (
    InvalidRequestError,
)


_FIELD_KEYS = {
    'eventid': 'event_id',
    'userid': 'user_id',
    'action': 'action',
}


def _normalize_key(key: str) -> str:
    return key.replace('_', '').lower()


@attrs.define
class RegistrationChangeRequest:
    event_id: str
    user_id: str
    action: RegistrationAction

    @classmethod
    def from_message(cls, payload: Any) -> 'RegistrationChangeRequest':
        if isinstance(payload, (bytes, str)):
            try:
                payload = orjson.loads(payload)
            except orjson.JSONDecodeError as e:
                raise InvalidRequestError(f'Message body is not valid JSON: {e}') from e

        if not isinstance(payload, dict):
            raise InvalidRequestError('Message body must be a JSON object')

        fields: dict[str, Any] = {}
        for key, value in payload.items():
            if isinstance(key, str) and (field := _FIELD_KEYS.get(_normalize_key(key))):
                fields[field] = value

        missing = [name for name in ('event_id', 'user_id', 'action') if name not in fields]
        if missing:
            raise InvalidRequestError(f'Missing required fields: {", ".join(missing)}')

        for name in ('event_id', 'user_id', 'action'):
            if not isinstance(fields[name], str):
                raise InvalidRequestError(f'Field {name} must be a string')

        try:
            action = RegistrationAction(fields['action'])
        except ValueError as e:
            raise InvalidRequestError(f'Unknown action: {fields["action"]!r}') from e

        return cls(event_id=fields['event_id'], user_id=fields['user_id'], action=action)
