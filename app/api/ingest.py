import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from app.models.ingestion import PopSubmission
from app.services.ingestion_service import IngestionService, StoreOutcome

logger = logging.getLogger("pops.api.ingest")

router = APIRouter(tags=["Proof of Play"])


def get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion_service


@router.post("/pop")
async def pop_post(
    submission: PopSubmission,
    service: IngestionService = Depends(get_ingestion_service),
):
    """Accept a batch of proof-of-play entries from a player."""
    outcome = await service.authenticate_and_store(submission)

    if outcome is StoreOutcome.UNAUTHORIZED:
        logger.warning(f"POST /pop -> 401 for player {submission.player_id}")
        raise HTTPException(
            status_code=401,
            detail=f"Unauthorized access for api key '{submission.api_key}'",
        )
    if outcome is StoreOutcome.FAILED:
        logger.warning(
            f"POST /pop -> 500 for player {submission.player_id} ({len(submission.pops)} pops)"
        )
        raise HTTPException(
            status_code=500,
            detail="Failed to store proof of play submission.",
        )

    return {"status": "ok", "stored": len(submission.pops)}
