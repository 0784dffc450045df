import anyio
from opentelemetry import trace

from src.platform.logging.loguru_io import Logger
from src.service.registration.app.interface.i_registration_command_repo import (
    IRegistrationCommandRepo,
)
from src.service.registration.domain.entity.event_entity import EventEntity
from src.service.registration.domain.entity.registration_entity import RegistrationEntity
from src.service.registration.domain.exception.registration_exceptions import StorageError


class RegisterForEventUseCase:
    """
    Register a user for an event, honouring the event's capacity.

    The whole transaction runs under a request deadline; on timeout the
    transaction is cancelled (and rolled back) and StorageError is raised so
    the request stays eligible for redelivery.
    """

    def __init__(
        self,
        registration_command_repo: IRegistrationCommandRepo,
        *,
        timeout_seconds: float,
    ) -> None:
        self.registration_command_repo = registration_command_repo
        self.timeout_seconds = timeout_seconds
        self.tracer = trace.get_tracer(__name__)

    @Logger.io
    async def execute(self, *, event_id: str, user_id: str) -> EventEntity:
        registration = RegistrationEntity.parse(event_id=event_id, user_id=user_id)

        with self.tracer.start_as_current_span(
            'use_case.register_for_event',
            attributes={
                'event.id': str(registration.event_id),
                'user.id': registration.user_id,
            },
        ):
            try:
                with anyio.fail_after(self.timeout_seconds):
                    event = await self.registration_command_repo.register(
                        registration=registration
                    )
            except TimeoutError as e:
                raise StorageError(
                    f'Registration for event {registration.event_id} timed out '
                    f'after {self.timeout_seconds}s'
                ) from e

        Logger.base.info(
            f'✅ [REGISTER] User {registration.user_id} registered for event {event.id} '
            f'({event.registered_count}/{event.total_spots})'
        )
        return event
