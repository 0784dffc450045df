"""
Integration tests for RegistrationCommandRepoImpl against PostgreSQL

Invariants checked after every scenario:
- "RegisteredCount" equals the number of "EventRegistrations" rows for the event
- 0 <= "RegisteredCount" <= "TotalSpots"
"""

import uuid

import anyio
import pytest

from src.platform.database.asyncpg_setting import get_asyncpg_pool
from src.service.registration.domain.entity.registration_entity import RegistrationEntity
from src.service.registration.domain.exception.registration_exceptions import (
    CapacityExceededError,
    EventNotFoundError,
)
from src.service.registration.driven_adapter.repo.registration_command_repo_impl import (
    RegistrationCommandRepoImpl,
)


async def _create_event(*, total_spots: int, registered_count: int = 0) -> uuid.UUID:
    event_id = uuid.uuid4()
    async with (await get_asyncpg_pool()).acquire() as conn:
        await conn.execute(
            'INSERT INTO "Events" ("Id", "TotalSpots", "RegisteredCount") VALUES ($1, $2, $3)',
            event_id,
            total_spots,
            registered_count,
        )
    return event_id


async def _seed_registrations(event_id: uuid.UUID, *user_ids: str) -> None:
    async with (await get_asyncpg_pool()).acquire() as conn:
        async with conn.transaction():
            for user_id in user_ids:
                await conn.execute(
                    'INSERT INTO "EventRegistrations" ("EventId", "UserId") VALUES ($1, $2)',
                    event_id,
                    user_id,
                )
            await conn.execute(
                'UPDATE "Events" SET "RegisteredCount" = "RegisteredCount" + $2 WHERE "Id" = $1',
                event_id,
                len(user_ids),
            )


async def _counts(event_id: uuid.UUID) -> tuple[int, int, int]:
    """(registered_count, registration rows, total_spots)"""
    async with (await get_asyncpg_pool()).acquire() as conn:
        row = await conn.fetchrow(
            """
            SELECT e."RegisteredCount", e."TotalSpots",
                   (SELECT count(*) FROM "EventRegistrations" r WHERE r."EventId" = e."Id") AS rows
            FROM "Events" e
            WHERE e."Id" = $1
            """,
            event_id,
        )
    return row['RegisteredCount'], row['rows'], row['TotalSpots']


async def _assert_consistent(event_id: uuid.UUID) -> int:
    registered_count, rows, total_spots = await _counts(event_id)
    assert registered_count == rows
    assert 0 <= registered_count <= total_spots
    return registered_count


def _registration(event_id: uuid.UUID, user_id: str) -> RegistrationEntity:
    return RegistrationEntity(event_id=event_id, user_id=user_id)


@pytest.fixture
def repo() -> RegistrationCommandRepoImpl:
    return RegistrationCommandRepoImpl()


@pytest.mark.integration
class TestRegister:
    @pytest.mark.asyncio
    async def test_register_increments_counter_and_inserts_row(
        self, repo: RegistrationCommandRepoImpl
    ) -> None:
        event_id = await _create_event(total_spots=3)

        event = await repo.register(registration=_registration(event_id, 'alice'))

        assert event.id == event_id
        assert event.registered_count == 1
        assert await _assert_consistent(event_id) == 1

    @pytest.mark.asyncio
    async def test_register_on_full_event_changes_nothing(
        self, repo: RegistrationCommandRepoImpl
    ) -> None:
        event_id = await _create_event(total_spots=1)
        await repo.register(registration=_registration(event_id, 'alice'))

        with pytest.raises(CapacityExceededError):
            await repo.register(registration=_registration(event_id, 'bob'))

        assert await _assert_consistent(event_id) == 1

    @pytest.mark.asyncio
    async def test_register_on_unknown_event_changes_nothing(
        self, repo: RegistrationCommandRepoImpl
    ) -> None:
        with pytest.raises(EventNotFoundError):
            await repo.register(registration=_registration(uuid.uuid4(), 'alice'))

        async with (await get_asyncpg_pool()).acquire() as conn:
            assert await conn.fetchval('SELECT count(*) FROM "EventRegistrations"') == 0

    @pytest.mark.asyncio
    async def test_same_user_may_register_twice(self, repo: RegistrationCommandRepoImpl) -> None:
        event_id = await _create_event(total_spots=5)

        await repo.register(registration=_registration(event_id, 'alice'))
        await repo.register(registration=_registration(event_id, 'alice'))

        assert await _assert_consistent(event_id) == 2


@pytest.mark.integration
class TestUnregister:
    @pytest.mark.asyncio
    async def test_unregister_without_registration_is_no_op(
        self, repo: RegistrationCommandRepoImpl
    ) -> None:
        event_id = await _create_event(total_spots=5)

        assert await repo.unregister(registration=_registration(event_id, 'alice')) == 0

        assert await _assert_consistent(event_id) == 0

    @pytest.mark.asyncio
    async def test_unregister_of_other_user_keeps_counter(
        self, repo: RegistrationCommandRepoImpl
    ) -> None:
        event_id = await _create_event(total_spots=5)
        await _seed_registrations(event_id, 'alice')

        assert await repo.unregister(registration=_registration(event_id, 'bob')) == 0

        assert await _assert_consistent(event_id) == 1

    @pytest.mark.asyncio
    async def test_unregister_on_unknown_event_is_no_op(
        self, repo: RegistrationCommandRepoImpl
    ) -> None:
        assert await repo.unregister(registration=_registration(uuid.uuid4(), 'alice')) == 0

    @pytest.mark.asyncio
    async def test_repeated_unregister_never_goes_negative(
        self, repo: RegistrationCommandRepoImpl
    ) -> None:
        event_id = await _create_event(total_spots=5)
        await _seed_registrations(event_id, 'alice')

        for _ in range(3):
            await repo.unregister(registration=_registration(event_id, 'alice'))

        assert await _assert_consistent(event_id) == 0

    @pytest.mark.asyncio
    async def test_unregister_removes_duplicate_rows(
        self, repo: RegistrationCommandRepoImpl
    ) -> None:
        event_id = await _create_event(total_spots=5)
        await _seed_registrations(event_id, 'alice', 'alice', 'bob')

        assert await repo.unregister(registration=_registration(event_id, 'alice')) == 2

        assert await _assert_consistent(event_id) == 1

    @pytest.mark.asyncio
    async def test_unregister_frees_spot_on_full_event(
        self, repo: RegistrationCommandRepoImpl
    ) -> None:
        event_id = await _create_event(total_spots=5)
        await _seed_registrations(event_id, 'alice', 'bob', 'carol', 'erin', 'frank')

        await repo.unregister(registration=_registration(event_id, 'carol'))
        event = await repo.register(registration=_registration(event_id, 'dave'))

        assert event.registered_count == 5
        assert await _assert_consistent(event_id) == 5


@pytest.mark.integration
class TestConcurrentRegistration:
    @pytest.mark.asyncio
    async def test_two_users_race_for_last_spot(self, repo: RegistrationCommandRepoImpl) -> None:
        event_id = await _create_event(total_spots=1)
        succeeded: list[str] = []
        rejected: list[str] = []

        async def attempt(user_id: str) -> None:
            try:
                await repo.register(registration=_registration(event_id, user_id))
                succeeded.append(user_id)
            except CapacityExceededError:
                rejected.append(user_id)

        async with anyio.create_task_group() as tg:
            tg.start_soon(attempt, 'alice')
            tg.start_soon(attempt, 'bob')

        assert len(succeeded) == 1
        assert len(rejected) == 1
        assert await _assert_consistent(event_id) == 1

    @pytest.mark.asyncio
    async def test_many_concurrent_registrations_never_oversell(
        self, repo: RegistrationCommandRepoImpl
    ) -> None:
        event_id = await _create_event(total_spots=5)
        outcomes: list[bool] = []

        async def attempt(user_id: str) -> None:
            try:
                await repo.register(registration=_registration(event_id, user_id))
                outcomes.append(True)
            except CapacityExceededError:
                outcomes.append(False)

        async with anyio.create_task_group() as tg:
            for i in range(20):
                tg.start_soon(attempt, f'user-{i}')

        assert outcomes.count(True) == 5
        assert outcomes.count(False) == 15
        assert await _assert_consistent(event_id) == 5

    @pytest.mark.asyncio
    async def test_interleaved_register_and_unregister_stay_consistent(
        self, repo: RegistrationCommandRepoImpl
    ) -> None:
        event_id = await _create_event(total_spots=10)
        await _seed_registrations(event_id, *[f'seed-{i}' for i in range(5)])

        async def register(user_id: str) -> None:
            await repo.register(registration=_registration(event_id, user_id))

        async def unregister(user_id: str) -> None:
            await repo.unregister(registration=_registration(event_id, user_id))

        async with anyio.create_task_group() as tg:
            for i in range(5):
                tg.start_soon(unregister, f'seed-{i}')
                tg.start_soon(register, f'new-{i}')

        assert await _assert_consistent(event_id) == 5
