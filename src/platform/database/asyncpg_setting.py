import asyncio

import asyncpg

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger


# Global connection pools per event loop
asyncpg_pools: dict[int, asyncpg.Pool] = {}


async def get_asyncpg_pool() -> asyncpg.Pool:
    current_loop = asyncio.get_running_loop()
    loop_id = id(current_loop)

    # Fast path: pool already exists for this loop
    if loop_id in asyncpg_pools:
        pool = asyncpg_pools[loop_id]
        Logger.base.debug(
            f'📊 [Pool Stats] size={pool.get_size()}, free={pool.get_idle_size()}, '
            f'max={pool.get_max_size()}, min={pool.get_min_size()}'
        )
        return pool

    # Slow path: create new pool (should only happen at startup)
    pool = await asyncpg.create_pool(
        settings.DATABASE_DSN,
        min_size=settings.ASYNCPG_POOL_MIN_SIZE,
        max_size=settings.ASYNCPG_POOL_MAX_SIZE,
        command_timeout=settings.ASYNCPG_POOL_COMMAND_TIMEOUT,
        max_inactive_connection_lifetime=settings.ASYNCPG_POOL_MAX_INACTIVE_LIFETIME,
        timeout=settings.ASYNCPG_POOL_TIMEOUT,
        max_queries=settings.ASYNCPG_POOL_MAX_QUERIES,
    )

    asyncpg_pools[loop_id] = pool
    Logger.base.info(
        f'🔗 [DB] asyncpg pool created for event loop {loop_id} '
        f'(min={settings.ASYNCPG_POOL_MIN_SIZE}, max={settings.ASYNCPG_POOL_MAX_SIZE})'
    )

    return pool


async def close_asyncpg_pool() -> None:
    """
    Close the asyncpg connection pool for the current event loop

    Note: Only closes the pool for the current event loop.
    Other event loops' pools remain active.
    """
    loop_id = id(asyncio.get_running_loop())

    if loop_id in asyncpg_pools:
        pool = asyncpg_pools.pop(loop_id)
        await pool.close()
