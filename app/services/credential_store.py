import logging

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from app.core.database import Database
from app.models.pop import Tenant

logger = logging.getLogger("pops.credentials")


def mask_api_key(api_key: str) -> str:
    return f"...{api_key[-4:]}" if len(api_key) > 4 else "****"


class CredentialStore:
    """Read path over the tenant table, answering whether an API key is known."""

    def __init__(self, database: Database):
        self._database = database

    async def exists(self, api_key: str) -> bool:
        """True iff a tenant holds exactly ``api_key``.

        Fails closed: any storage error is logged and reported as an unknown key.
        """
        stmt = select(Tenant.id).where(Tenant.api_key == api_key).limit(1)
        try:
            async with self._database.session_maker() as session:
                result = await session.execute(stmt)
                return result.scalar_one_or_none() is not None
        except PoolTimeoutError as e:
            logger.error(f"Could not get database connection: {e}")
            return False
        except SQLAlchemyError as e:
            logger.error(
                f"Tenant lookup failed for api key '{mask_api_key(api_key)}': {e}"
            )
            return False

    async def register(self, api_key: str) -> bool:
        """Insert a tenant for ``api_key``, ignoring an already registered key.

        Returns True when a new tenant row was created. Storage errors propagate
        to the provisioning caller.
        """
        if self._database.dialect_name == "postgresql":
            stmt = pg_insert(Tenant).values(api_key=api_key)
        else:
            stmt = sqlite_insert(Tenant).values(api_key=api_key)
        stmt = stmt.on_conflict_do_nothing(index_elements=[Tenant.api_key])

        async with self._database.session_maker() as session:
            async with session.begin():
                result = await session.execute(stmt)
                created = result.rowcount == 1

        if created:
            logger.info(f"Registered tenant for api key '{mask_api_key(api_key)}'")
        return created
