import logging
from datetime import datetime, timezone
from functools import partial
from typing import Callable, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .completion import CompletionAdapter, prime
from .config import Settings, get_settings
from .errors import UpstreamError, error_message
from .framing import FRAMERS, MEDIA_TYPES, SSE_HEADERS
from .middleware import ErrorHandlingMiddleware, RequestLoggingMiddleware
from .providers.base import Provider
from .providers.openai_compat import build_provider
from .schemas import ErrorResponse, HealthResponse, ValidationErrorResponse, ValidationFailure
from .validation import validate_conversation

logger = logging.getLogger(__name__)

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD"]


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_provider_factory(settings: Settings = Depends(get_app_settings)) -> Callable[[], Provider]:
    # construction is deferred so a missing API key fails inside the request
    return partial(build_provider, settings)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "HTTP Exception", "message": exc.detail},
    )


def error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, message=message).model_dump(),
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title=settings.app_name, version="0.1.0")
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
        max_age=86400,
    )
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(status="healthy", timestamp=datetime.now(timezone.utc))

    @app.get("/ping", response_class=PlainTextResponse)
    async def ping():
        return "pong"

    @app.post(
        "/chat",
        responses={
            400: {"model": ValidationErrorResponse, "description": "Invalid conversation"},
            500: {"model": ErrorResponse, "description": "Internal server error"},
        },
    )
    async def chat(
        request: Request,
        settings: Settings = Depends(get_app_settings),
        provider_factory: Callable[[], Provider] = Depends(get_provider_factory),
    ):
        try:
            payload = await request.json()
        except ValueError as e:
            return error_response(status.HTTP_400_BAD_REQUEST, "Invalid JSON", str(e))

        result = validate_conversation(payload, settings.validation_mode)
        if isinstance(result, ValidationFailure):
            logger.warning("Rejected conversation: %d issue(s)", len(result.issues))
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content=ValidationErrorResponse(details=list(result.issues)).model_dump(),
            )

        try:
            adapter = CompletionAdapter(
                provider=provider_factory(),
                model=settings.model,
                system_prompt=settings.system_prompt,
                chunking=settings.smoothing,
                delay=settings.smoothing_delay,
            )
            fragments = await prime(adapter.stream(result))
        except UpstreamError as e:
            logger.error("Provider failed before streaming: %s", e)
            return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Upstream Error", error_message(e))
        except Exception as e:
            logger.exception("Chat request failed before streaming")
            return error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error", error_message(e)
            )

        framer = FRAMERS[settings.framing]
        return StreamingResponse(
            framer(fragments),
            media_type=MEDIA_TYPES[settings.framing],
            headers=SSE_HEADERS if settings.framing == "sse" else None,
        )

    @app.options("/{path:path}", include_in_schema=False)
    async def preflight(path: str):
        return PlainTextResponse("")

    @app.api_route("/{path:path}", methods=ALL_METHODS, include_in_schema=False)
    async def route_not_found(request: Request, path: str):
        logger.info("404 - Route not found: %s %s", request.method, request.url.path)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Route {request.method} {request.url.path} not found",
        )

    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    # factory mode: the app is built once, inside the server process
    uvicorn.run(
        "chat_gateway.main:create_app",
        factory=True,
        host=settings.app_host,
        port=settings.app_port,
    )
