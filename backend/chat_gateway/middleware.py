"""
HTTP middleware.
Request/response logging and last-resort error handling.
"""
import json
import logging
import time
from typing import Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .errors import error_message

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one line per request and per response."""

    def __init__(self, app, ignore_paths: tuple = ()):
        super().__init__(app)
        self.ignore_paths = ignore_paths or ("/health", "/ping", "/favicon.ico")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.ignore_paths:
            return await call_next(request)

        start_time = time.time()
        logger.info(
            json.dumps(
                {
                    "type": "request",
                    "method": request.method,
                    "path": request.url.path,
                    "client_ip": self._get_client_ip(request),
                }
            )
        )

        response = await call_next(request)

        process_time = time.time() - start_time
        response_log = json.dumps(
            {
                "type": "response",
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "process_time_ms": round(process_time * 1000, 2),
            }
        )
        # for streamed bodies this is time to first byte
        if response.status_code >= 500:
            logger.error(response_log)
        elif response.status_code >= 400:
            logger.warning(response_log)
        else:
            logger.info(response_log)

        response.headers["X-Process-Time"] = str(process_time)
        return response

    def _get_client_ip(self, request: Request) -> str:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
        if request.client:
            return request.client.host
        return "unknown"


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turns anything that escapes a route before the response starts into a 500."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(
                "Unhandled error",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": "Internal Server Error",
                    "message": error_message(e),
                },
            )
