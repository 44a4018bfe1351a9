from fastapi import APIRouter, Request, Response

router = APIRouter(tags=["Monitoring"])


@router.get("/status")
async def status_get():
    """Liveness probe; never touches storage."""
    return Response(status_code=200)


@router.options("/health")
async def health_options():
    """Allow basic OPTIONS checks from load balancers and proxies."""
    return {"status": "ok"}


@router.get("/health")
async def health_check(request: Request):
    """Readiness probe reporting whether the connection pool can reach storage."""
    database = getattr(request.app.state, "database", None)
    if database is None:
        return {"status": "ok", "db": "not configured"}
    if await database.ping():
        return {"status": "ok", "db": "connected"}
    return {"status": "ok", "db": "unavailable"}
