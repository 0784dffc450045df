import anyio
from opentelemetry import trace

from src.platform.logging.loguru_io import Logger
from src.service.registration.app.interface.i_registration_command_repo import (
    IRegistrationCommandRepo,
)
from src.service.registration.domain.entity.registration_entity import RegistrationEntity
from src.service.registration.domain.exception.registration_exceptions import StorageError


class UnregisterFromEventUseCase:
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
    async def execute(self, *, event_id: str, user_id: str) -> int:
        """Returns the number of deleted registrations (0 is a successful no-op)"""
        registration = RegistrationEntity.parse(event_id=event_id, user_id=user_id)

        with self.tracer.start_as_current_span(
            'use_case.unregister_from_event',
            attributes={
                'event.id': str(registration.event_id),
                'user.id': registration.user_id,
            },
        ):
            try:
                with anyio.fail_after(self.timeout_seconds):
                    deleted = await self.registration_command_repo.unregister(
                        registration=registration
                    )
            except TimeoutError as e:
                raise StorageError(
                    f'Unregistration for event {registration.event_id} timed out '
                    f'after {self.timeout_seconds}s'
                ) from e

        if deleted:
            Logger.base.info(
                f'✅ [UNREGISTER] User {registration.user_id} unregistered from event '
                f'{registration.event_id} ({deleted} registration(s) removed)'
            )
        else:
            Logger.base.info(
                f'ℹ️  [UNREGISTER] No registration for user {registration.user_id} '
                f'on event {registration.event_id}, nothing to remove'
            )
        return deleted
