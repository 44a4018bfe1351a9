import os
from datetime import datetime

from sqlalchemy import func, select

from app.core.database import Database
from app.models.ingestion import PopEntry, PopSubmission
from app.models.pop import PlayEvent
from app.services.credential_store import CredentialStore


def sqlite_url(directory: str, name: str = "pops_test.db") -> str:
    return f"sqlite+aiosqlite:///{os.path.join(directory, name)}"


def make_pop_entry(**overrides) -> PopEntry:
    fields = {
        "display_unit_id": 123,
        "frame_id": 124,
        "active_screens_count": 2,
        "ad_copy_id": 56467,
        "campaign_id": 61000,
        "schedule_id": 61001,
        "impressions": 675,
        "interactions": 0,
        "end_time": datetime(2017, 11, 23, 13, 27, 12, 500000),
        "duration_ms": 12996,
        "service_name": "bmb",
        "service_value": "701",
        "extra_data": "",
    }
    fields.update(overrides)
    return PopEntry(**fields)


def make_submission(api_key="k1", player_id=123456, pops=None) -> PopSubmission:
    return PopSubmission(
        api_key=api_key,
        player_id=player_id,
        pops=pops if pops is not None else [make_pop_entry()],
    )


def verbose_pop_request(api_key="k1"):
    return {
        "api_key": api_key,
        "player_id": 123456,
        "pop": [
            {
                "display_unit_id": 123,
                "frame_id": 124,
                "n_screens": 2,
                "ad_copy_id": 56467,
                "campaign_id": 61000,
                "schedule_id": 61001,
                "impressions": 675,
                "interactions": 0,
                "end_time": "2017-11-23T13:27:12.500",
                "duration": 12996,
                "ext1": "bmb",
                "ext2": "701",
                "extra_data": "",
            }
        ],
    }


def compact_pop_request(api_key="k1"):
    return {
        "api_key": api_key,
        "player_id": 12345,
        "pop": [
            [4456, 4457, 1, 5001, 5002, 5003, 2, 0, "2016-05-31T10:14:50.200", 5000, "bmb", "3451", ""],
            [3456, 3457, 1, 7001, 7002, 7003, 4, 1, "2016-05-31T10:14:55.200", 5000, "", "", ""],
        ],
    }


async def open_database(url: str, **kwargs) -> Database:
    database = Database(url, **kwargs)
    await database.init_schema()
    return database


async def count_pops(database: Database) -> int:
    async with database.session_maker() as session:
        result = await session.execute(select(func.count()).select_from(PlayEvent))
        return result.scalar_one()


async def fetch_pops(database: Database):
    async with database.session_maker() as session:
        result = await session.execute(select(PlayEvent).order_by(PlayEvent.id))
        return list(result.scalars())


async def provision(url: str, *api_keys: str):
    database = await open_database(url)
    try:
        store = CredentialStore(database)
        for key in api_keys:
            await store.register(key)
    finally:
        await database.dispose()


async def count_pops_at(url: str) -> int:
    database = Database(url)
    try:
        return await count_pops(database)
    finally:
        await database.dispose()
