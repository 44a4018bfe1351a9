import logging

from sqlalchemy import insert, select
from sqlalchemy.exc import SQLAlchemyError

from app.core.database import Database
from app.core.errors import StorageUnavailableError, WriteFailedError
from app.models.ingestion import PopEntry, PopSubmission
from app.models.pop import PlayEvent, Tenant
from app.services.credential_store import mask_api_key

logger = logging.getLogger("pops.writer")


def build_pop_insert(api_key: str, player_id: int, pop: PopEntry):
    """Insert statement for one pop, owned by whichever tenant holds ``api_key``
    when the statement runs.

    The tenant id is never taken from the caller. An unknown key makes the
    sub-query yield NULL, which the NOT NULL tenant column rejects.
    """
    tenant_id = (
        select(Tenant.id).where(Tenant.api_key == api_key).scalar_subquery()
    )
    return insert(PlayEvent).values(
        tenant_id=tenant_id,
        player_id=player_id,
        display_unit_id=pop.display_unit_id,
        frame_id=pop.frame_id,
        active_screens_count=pop.active_screens_count,
        ad_copy_id=pop.ad_copy_id,
        schedule_id=pop.schedule_id,
        impressions=pop.impressions,
        interactions=pop.interactions,
        end_time=pop.end_time_ms,
        duration_ms=pop.duration_ms,
        service_name=pop.service_name,
        service_value=pop.service_value,
        extra_data=pop.serialized_extra_data(),
    )


class PopWriter:
    """Persists every pop of a submission in a single transaction."""

    def __init__(self, database: Database):
        self._database = database

    async def persist(self, submission: PopSubmission) -> bool:
        """Store all pops of ``submission`` atomically.

        Returns True only once the transaction has committed. Any connection,
        insert or commit failure rolls the whole batch back and returns False.
        """
        count = len(submission.pops)
        masked_key = mask_api_key(submission.api_key)
        try:
            async with self._database.session_maker() as session:
                async with session.begin():
                    await self._checkout(session)
                    for index, pop in enumerate(submission.pops):
                        await self._insert(session, submission, index, pop)
        except StorageUnavailableError as e:
            logger.error(f"Could not get database connection: {e}")
            return False
        except WriteFailedError as e:
            logger.error(
                f"Rolled back {count} pops for api key '{masked_key}' "
                f"(player {submission.player_id}): pop #{e.event_index} failed: {e}"
            )
            return False
        except SQLAlchemyError as e:
            logger.error(
                f"Commit failed for {count} pops for api key '{masked_key}' "
                f"(player {submission.player_id}): {e}"
            )
            return False

        logger.debug(
            f"Stored {count} pops for api key '{masked_key}' (player {submission.player_id})"
        )
        return True

    async def _checkout(self, session):
        try:
            await session.connection()
        except SQLAlchemyError as e:
            raise StorageUnavailableError(str(e)) from e

    async def _insert(self, session, submission, index, pop):
        try:
            stmt = build_pop_insert(submission.api_key, submission.player_id, pop)
            await session.execute(stmt)
        except (SQLAlchemyError, TypeError, ValueError, OverflowError) as e:
            raise WriteFailedError(str(e), event_index=index) from e
