#!/usr/bin/env python3
"""
Database Init Script
Create the registration tables for local development

Features:
1. Drop tables (--reset) - wipe "Events" and "EventRegistrations"
2. Create tables - "Events" and "EventRegistrations" if missing
3. Seed an event (--seed-spots N) - insert one event with N total spots

Notes:
- Events are normally owned by the event-management system; seeding is for local testing only
"""

import argparse
import asyncio
import uuid

from src.platform.database.asyncpg_setting import close_asyncpg_pool, get_asyncpg_pool
from src.platform.database.orm_db_setting import (
    create_db_and_tables,
    dispose_engine,
    drop_db_and_tables,
)


async def seed_event(*, total_spots: int) -> uuid.UUID:
    event_id = uuid.uuid4()
    async with (await get_asyncpg_pool()).acquire() as conn:
        await conn.execute(
            'INSERT INTO "Events" ("Id", "TotalSpots", "RegisteredCount") VALUES ($1, $2, 0)',
            event_id,
            total_spots,
        )
    return event_id


async def main(*, reset: bool, seed_spots: int | None) -> None:
    print('🔄 Initializing database...')
    print('=' * 50)

    try:
        if reset:
            print('🗑️  Dropping tables...')
            await drop_db_and_tables()

        print('🏗️  Creating tables...')
        await create_db_and_tables()
        print('   ✅ Tables ready')

        if seed_spots is not None:
            event_id = await seed_event(total_spots=seed_spots)
            print(f'   🎫 Seeded event {event_id} with {seed_spots} spots')

        print('=' * 50)
        print('✅ Database init completed!')
    finally:
        await close_asyncpg_pool()
        await dispose_engine()


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Create the event registration tables')
    parser.add_argument('--reset', action='store_true', help='drop the tables first')
    parser.add_argument('--seed-spots', type=int, default=None, help='seed one event')
    args = parser.parse_args()

    asyncio.run(main(reset=args.reset, seed_spots=args.seed_spots))
