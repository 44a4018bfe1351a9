import argparse
import asyncio

from app.config import get_settings
from app.core.database import Database
from app.services.credential_store import CredentialStore


async def provision(database_url, api_keys):
    settings = get_settings()
    database = Database(
        database_url or settings.database_url,
        busy_timeout=settings.db_busy_timeout,
    )
    try:
        await database.init_schema()
        store = CredentialStore(database)
        for key in api_keys:
            created = await store.register(key)
            print(f"{key}: {'registered' if created else 'already registered'}")
    finally:
        await database.dispose()


def main():
    parser = argparse.ArgumentParser(
        description="Register tenant API keys allowed to submit pops."
    )
    parser.add_argument("api_keys", nargs="+", help="API keys to register")
    parser.add_argument(
        "--database-url", default=None, help="Overrides DATABASE_URL from settings"
    )
    args = parser.parse_args()
    asyncio.run(provision(args.database_url, args.api_keys))


if __name__ == "__main__":
    main()
