import time
import logging
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi.responses import JSONResponse

logger = logging.getLogger("pops.request")


class BodySizeLimitMiddleware:
    """Reject requests whose declared body exceeds ``max_body_bytes`` with 413."""

    def __init__(self, app, max_body_bytes: int):
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            return await self.app(scope, receive, send)

        declared = None
        for name, value in scope.get("headers", []):
            if name == b"content-length":
                try:
                    declared = int(value)
                except ValueError:
                    res = JSONResponse(
                        status_code=400, content={"detail": "Invalid Content-Length"}
                    )
                    return await res(scope, receive, send)
                break

        if declared is not None and declared > self.max_body_bytes:
            logger.warning(
                f"Rejected {scope.get('method')} {scope.get('path')}: body of {declared} bytes "
                f"exceeds limit of {self.max_body_bytes}"
            )
            res = JSONResponse(
                status_code=413, content={"detail": "Request body too large"}
            )
            return await res(scope, receive, send)

        return await self.app(scope, receive, send)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        """Request-scoped logging middleware tagging each request with a UUID."""
        request_id = str(uuid.uuid4())
        start_time = time.time()

        request.state.request_id = request_id

        logger.info(f"[{request_id}] START {request.method} {request.url.path}")

        try:
            response = await call_next(request)

            process_time = time.time() - start_time
            logger.info(
                f"[{request_id}] DONE {response.status_code} in {process_time:.4f}s - {request.method} {request.url.path}"
            )

            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as e:
            process_time = time.time() - start_time
            logger.error(
                f"[{request_id}] ERROR 500 in {process_time:.4f}s - {request.method} {request.url.path} (Error: {str(e)})"
            )
            raise
