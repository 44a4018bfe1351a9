import logging
from enum import Enum

from app.models.ingestion import PopSubmission
from app.services.credential_store import CredentialStore, mask_api_key
from app.services.pop_writer import PopWriter

logger = logging.getLogger("pops.ingestion")


class StoreOutcome(str, Enum):
    STORED = "stored"
    UNAUTHORIZED = "unauthorized"
    FAILED = "failed"


class IngestionService:
    """Authenticates a pop submission and stores it, in that order."""

    def __init__(self, credentials: CredentialStore, writer: PopWriter):
        self._credentials = credentials
        self._writer = writer

    async def authenticate_and_store(self, submission: PopSubmission) -> StoreOutcome:
        masked_key = mask_api_key(submission.api_key)
        logger.debug(
            f"Received pop submission: api_key='{masked_key}' "
            f"player={submission.player_id} pops={len(submission.pops)}"
        )

        if not await self._credentials.exists(submission.api_key):
            logger.error(f"Pop submission refused for api key '{masked_key}'")
            return StoreOutcome.UNAUTHORIZED

        if not await self._writer.persist(submission):
            logger.error(
                f"Failed to store {len(submission.pops)} pops for api key '{masked_key}' "
                f"(player {submission.player_id})."
            )
            return StoreOutcome.FAILED

        logger.info(
            f"POP_STORED | pops={len(submission.pops)} | player={submission.player_id}"
        )
        return StoreOutcome.STORED
