import uuid

import pytest

from src.service.registration.domain.entity.event_entity import EventEntity
from src.service.registration.domain.entity.registration_entity import RegistrationEntity
from src.service.registration.domain.exception.registration_exceptions import (
    InvalidRequestError,
)


@pytest.mark.unit
class TestRegistrationEntityParse:
    def test_parses_uuid_string(self) -> None:
        event_id = uuid.uuid4()

        registration = RegistrationEntity.parse(event_id=str(event_id), user_id='alice')

        assert registration.event_id == event_id
        assert registration.user_id == 'alice'

    def test_accepts_uuid_instance(self) -> None:
        event_id = uuid.uuid4()

        registration = RegistrationEntity.parse(event_id=event_id, user_id='alice')

        assert registration.event_id is event_id

    @pytest.mark.parametrize('event_id', ['not-a-uuid', '', '1234'])
    def test_malformed_event_id_is_invalid(self, event_id: str) -> None:
        with pytest.raises(InvalidRequestError, match='Invalid event_id'):
            RegistrationEntity.parse(event_id=event_id, user_id='alice')

    @pytest.mark.parametrize('user_id', ['', '   ', '\t\n'])
    def test_empty_or_blank_user_id_is_invalid(self, user_id: str) -> None:
        with pytest.raises(InvalidRequestError, match='user_id cannot be empty'):
            RegistrationEntity.parse(event_id=str(uuid.uuid4()), user_id=user_id)

    @pytest.mark.parametrize('user_id', ['al\x00ice', '\x00'])
    def test_user_id_with_nul_is_invalid(self, user_id: str) -> None:
        with pytest.raises(InvalidRequestError, match='NUL character'):
            RegistrationEntity.parse(event_id=str(uuid.uuid4()), user_id=user_id)

    def test_non_string_user_id_is_invalid(self) -> None:
        with pytest.raises(InvalidRequestError, match='Invalid user_id'):
            RegistrationEntity.parse(event_id=str(uuid.uuid4()), user_id=42)  # type: ignore[arg-type]

    def test_same_user_and_event_compare_equal(self) -> None:
        event_id = uuid.uuid4()

        first = RegistrationEntity.parse(event_id=event_id, user_id='alice')
        second = RegistrationEntity.parse(event_id=event_id, user_id='alice')

        assert first == second


@pytest.mark.unit
class TestEventEntity:
    def test_available_spots(self) -> None:
        event = EventEntity(id=uuid.uuid4(), total_spots=5, registered_count=3)

        assert event.available_spots == 2
        assert not event.is_full

    def test_full_event(self) -> None:
        event = EventEntity(id=uuid.uuid4(), total_spots=1, registered_count=1)

        assert event.available_spots == 0
        assert event.is_full

    def test_zero_capacity_event_is_full(self) -> None:
        event = EventEntity(id=uuid.uuid4(), total_spots=0, registered_count=0)

        assert event.is_full

    def test_negative_counter_is_rejected(self) -> None:
        with pytest.raises(ValueError, match='registered_count cannot be negative'):
            EventEntity(id=uuid.uuid4(), total_spots=5, registered_count=-1)
