"""
Registration Command Repository Implementation

Capacity-controlled writes to the "Events" / "EventRegistrations" tables.
Register locks the target event row (SELECT ... FOR UPDATE) so that concurrent
registrations for the same event are serialized and the stored RegisteredCount
never exceeds TotalSpots.
"""

import asyncpg
from opentelemetry import trace

from src.platform.database.asyncpg_setting import get_asyncpg_pool
from src.platform.logging.loguru_io import Logger
from src.service.registration.app.interface.i_registration_command_repo import (
    IRegistrationCommandRepo,
)
from src.service.registration.domain.entity.event_entity import EventEntity
from src.service.registration.domain.entity.registration_entity import RegistrationEntity
from src.service.registration.domain.exception.registration_exceptions import (
    CapacityExceededError,
    EventNotFoundError,
    InvalidRequestError,
    StorageError,
)


# Driver, network and command-timeout failures; the transaction is already rolled back.
# asyncpg.DataError (SQLSTATE class 22) is caught first: the input itself is bad.
_STORAGE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, TimeoutError)


class RegistrationCommandRepoImpl(IRegistrationCommandRepo):
    def __init__(self) -> None:
        self.tracer = trace.get_tracer(__name__)

    @staticmethod
    def _row_to_entity(row: asyncpg.Record) -> EventEntity:
        return EventEntity(
            id=row['Id'],
            total_spots=row['TotalSpots'],
            registered_count=row['RegisteredCount'],
        )

    @staticmethod
    def _parse_affected_rows(status: str) -> int:
        """asyncpg returns the command tag, e.g. 'DELETE 2'"""
        try:
            return int(status.rsplit(' ', 1)[-1])
        except (ValueError, AttributeError):
            return 0

    @Logger.io
    async def register(self, *, registration: RegistrationEntity) -> EventEntity:
        """
        Lock the event, check capacity, insert the registration and increment
        RegisteredCount, all within one transaction.
        """
        with self.tracer.start_as_current_span(
            'repo.register',
            attributes={
                'event.id': str(registration.event_id),
                'user.id': registration.user_id,
            },
        ):
            try:
                async with (await get_asyncpg_pool()).acquire() as conn:
                    async with conn.transaction():
                        event_row = await conn.fetchrow(
                            """
                            SELECT "Id", "TotalSpots", "RegisteredCount"
                            FROM "Events"
                            WHERE "Id" = $1
                            FOR UPDATE
                            """,
                            registration.event_id,
                        )

                        if not event_row:
                            raise EventNotFoundError(registration.event_id)

                        event = self._row_to_entity(event_row)
                        if event.is_full:
                            raise CapacityExceededError(
                                registration.event_id, total_spots=event.total_spots
                            )

                        await conn.execute(
                            """
                            INSERT INTO "EventRegistrations" ("EventId", "UserId")
                            VALUES ($1, $2)
                            """,
                            registration.event_id,
                            registration.user_id,
                        )

                        updated_row = await conn.fetchrow(
                            """
                            UPDATE "Events"
                            SET "RegisteredCount" = "RegisteredCount" + 1
                            WHERE "Id" = $1
                            RETURNING "Id", "TotalSpots", "RegisteredCount"
                            """,
                            registration.event_id,
                        )
            except asyncpg.DataError as e:
                raise InvalidRequestError(
                    f'Rejected registration data for event {registration.event_id}: {e}'
                ) from e
            except _STORAGE_ERRORS as e:
                raise StorageError(
                    f'Failed to register user {registration.user_id} '
                    f'for event {registration.event_id}: {e}'
                ) from e

            return self._row_to_entity(updated_row)

    @Logger.io
    async def unregister(self, *, registration: RegistrationEntity) -> int:
        """
        Delete the user's registration rows for the event and decrement
        RegisteredCount by the number of deleted rows, floored at zero.

        No event-row lock is taken up front: the guarded UPDATE is atomic at the
        row level, and a concurrent register blocks on it until this transaction
        commits. A missing registration (or event) is a no-op and returns 0.
        """
        with self.tracer.start_as_current_span(
            'repo.unregister',
            attributes={
                'event.id': str(registration.event_id),
                'user.id': registration.user_id,
            },
        ):
            try:
                async with (await get_asyncpg_pool()).acquire() as conn:
                    async with conn.transaction():
                        status = await conn.execute(
                            """
                            DELETE FROM "EventRegistrations"
                            WHERE "EventId" = $1 AND "UserId" = $2
                            """,
                            registration.event_id,
                            registration.user_id,
                        )
                        deleted = self._parse_affected_rows(status)

                        if deleted:
                            await conn.execute(
                                """
                                UPDATE "Events"
                                SET "RegisteredCount" = GREATEST("RegisteredCount" - $2, 0)
                                WHERE "Id" = $1 AND "RegisteredCount" > 0
                                """,
                                registration.event_id,
                                deleted,
                            )
            except asyncpg.DataError as e:
                raise InvalidRequestError(
                    f'Rejected unregistration data for event {registration.event_id}: {e}'
                ) from e
            except _STORAGE_ERRORS as e:
                raise StorageError(
                    f'Failed to unregister user {registration.user_id} '
                    f'from event {registration.event_id}: {e}'
                ) from e

            return deleted
