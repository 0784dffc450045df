"""
Test Configuration and Fixtures

This module provides:
- Test environment variables (set before any application import)
- Test database creation and schema setup for integration tests
- Per-test table cleanup and asyncpg pool teardown

Architecture:
- Unit tests (marked `unit`): mocks only, never touch PostgreSQL
- Integration tests: real PostgreSQL, skipped when the server is unreachable
"""

# =============================================================================
# CRITICAL: Environment setup MUST happen before any other imports
# Settings reads POSTGRES_DB at import time
# =============================================================================
import os


def _early_setup_test_environment() -> None:
    worker_id = os.environ.get('PYTEST_XDIST_WORKER', 'master')
    if worker_id == 'master':
        os.environ['POSTGRES_DB'] = 'event_registration_test_db'
    else:
        os.environ['POSTGRES_DB'] = f'event_registration_test_db_{worker_id}'

    os.environ.setdefault('DEBUG', 'false')
    os.environ.setdefault('ASYNCPG_POOL_MIN_SIZE', '2')
    os.environ.setdefault('ASYNCPG_POOL_MAX_SIZE', '10')
    os.environ.setdefault('ASYNCPG_POOL_TIMEOUT', '5')


_early_setup_test_environment()

import asyncio  # noqa: E402
from collections.abc import AsyncGenerator  # noqa: E402
import contextlib  # noqa: E402

import asyncpg  # noqa: E402
import pytest  # noqa: E402

from src.platform.config.core_setting import settings  # noqa: E402


_postgres_available: bool | None = None


# =============================================================================
# Pytest Hooks: Detect test type and setup accordingly
# =============================================================================
def _is_unit_test_only_run(config: pytest.Config) -> bool:
    markexpr = config.getoption('markexpr', default='')
    if markexpr and 'unit' in str(markexpr) and 'not unit' not in str(markexpr):
        return True

    args = config.args or []
    test_paths = [arg for arg in args if arg and not arg.startswith('-')]
    return bool(test_paths and all('/unit/' in path or '\\unit\\' in path for path in test_paths))


def pytest_sessionstart(session: pytest.Session) -> None:
    global _postgres_available
    if _is_unit_test_only_run(session.config):
        return

    try:
        asyncio.run(_setup_test_database())
        _postgres_available = True
    except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
        _postgres_available = False
        print(f'\n⚠️  PostgreSQL unavailable, integration tests will be skipped: {e}')


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    skip_integration = pytest.mark.skip(reason='PostgreSQL is not available')
    for item in items:
        markers = [m.name for m in item.iter_markers()]
        if 'unit' in markers:
            continue
        if not _postgres_available:
            item.add_marker(skip_integration)
        else:
            item.fixturenames.append('clean_database')


# =============================================================================
# Database Setup and Cleanup
# =============================================================================
async def _setup_test_database() -> None:
    from src.platform.database.orm_db_setting import create_db_and_tables, dispose_engine

    server_dsn = settings.DATABASE_DSN.rsplit('/', 1)[0] + '/postgres'
    conn = await asyncpg.connect(server_dsn, timeout=5)
    try:
        exists = await conn.fetchval(
            'SELECT 1 FROM pg_database WHERE datname = $1', settings.POSTGRES_DB
        )
        if not exists:
            await conn.execute(f'CREATE DATABASE "{settings.POSTGRES_DB}"')
    finally:
        await conn.close()

    conn = await asyncpg.connect(settings.DATABASE_DSN, timeout=5)
    try:
        await conn.execute('DROP SCHEMA public CASCADE')
        await conn.execute('CREATE SCHEMA public')
    finally:
        await conn.close()

    await create_db_and_tables()
    await dispose_engine()


async def _clean_all_tables() -> None:
    conn = await asyncpg.connect(settings.DATABASE_DSN, timeout=5)
    try:
        await conn.execute('TRUNCATE "EventRegistrations", "Events" RESTART IDENTITY CASCADE')
    finally:
        await conn.close()


# =============================================================================
# Integration Test Fixtures
# =============================================================================
@pytest.fixture(scope='function')
async def clean_database() -> AsyncGenerator[None, None]:
    from src.platform.database.asyncpg_setting import close_asyncpg_pool

    await _clean_all_tables()
    yield

    # The pool is bound to this test's event loop
    with contextlib.suppress(OSError, asyncpg.InterfaceError):
        await close_asyncpg_pool()
