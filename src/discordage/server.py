"""HTTP server entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState via the Starlette lifespan context manager
- Register routes and translate handler errors into JSON responses
- Start uvicorn
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
import uvicorn
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route

import discordage.handlers.check_user as h_check_user
import discordage.handlers.guild_age as h_guild_age
import discordage.handlers.user_age as h_user_age
import discordage.handlers.username_age as h_username_age
from discordage import __version__
from discordage.cache import FileCache, MemoryCache
from discordage.config import Settings
from discordage.discord_client import DiscordClient, build_http_client
from discordage.errors import DiscordAgeError, ErrorCode
from discordage.models.responses import HealthOutput
from discordage.state import AppState
from discordage.verification import RecaptchaVerifier

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable, Callable

    from starlette.requests import Request

    from discordage.protocols import CacheProtocol

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


def _build_cache(settings: Settings) -> CacheProtocol:
    if settings.cache.backend == "memory":
        return MemoryCache(settings.cache.ttl_seconds)
    directory = Path(settings.cache.directory).expanduser()
    return FileCache(directory, settings.cache.ttl_seconds)


async def _check_bot_token(state: AppState) -> bool:
    """Confirm the bot token works. Failure is logged, never fatal."""
    if not state.settings.discord.bot_token:
        log.warning("discord_bot_token_missing")
        return False
    try:
        me = await state.discord.get_current_user()
    except DiscordAgeError as exc:
        log.warning("discord_bot_not_ready", code=exc.code, upstream_status=exc.upstream_status)
        return False
    log.info("discord_bot_ready", bot_id=me.get("id"), bot_name=me.get("username"))
    return True


@asynccontextmanager
async def lifespan(app: Starlette) -> AsyncGenerator[None, None]:
    """Create and tear down all shared resources for the server's lifetime."""
    settings: Settings = app.state.settings
    log.info("server_starting", version=__version__)

    http_client = build_http_client(settings.discord)
    verifier = None
    if settings.recaptcha.enabled:
        verifier = RecaptchaVerifier(
            http_client,
            secret_key=settings.recaptcha.secret_key,
            verify_url=settings.recaptcha.verify_url,
        )
    else:
        log.warning("recaptcha_disabled")

    state = AppState(
        settings=settings,
        cache=_build_cache(settings),
        discord=DiscordClient(http_client, settings.discord),
        verifier=verifier,
        http_client=http_client,
    )
    state.bot_ready = await _check_bot_token(state)
    app.state.app_state = state

    log.info(
        "server_started",
        version=__version__,
        cache_backend=settings.cache.backend,
        recaptcha_enabled=settings.recaptcha.enabled,
        bot_ready=state.bot_ready,
    )

    try:
        yield
    finally:
        if state.http_client is not None:
            await state.http_client.aclose()
        log.info("server_stopping")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


def _error_response(exc: DiscordAgeError) -> JSONResponse:
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


async def _run(
    endpoint: str,
    request: Request,
    call: Callable[[AppState], Awaitable[dict]],
) -> JSONResponse:
    """Invoke a handler and translate every failure into a JSON response."""
    state: AppState = request.app.state.app_state
    try:
        return JSONResponse(await call(state))
    except DiscordAgeError as exc:
        log.warning(
            "request_error",
            endpoint=endpoint,
            code=exc.code,
            message=exc.message,
            upstream_status=exc.upstream_status,
        )
        return _error_response(exc)
    except Exception:
        log.error("request_unexpected_error", endpoint=endpoint, exc_info=True)
        return _error_response(
            DiscordAgeError(code=ErrorCode.UPSTREAM_ERROR, message="Internal server error")
        )


async def root(request: Request) -> JSONResponse:
    return JSONResponse({"message": "Discord Age Checker API is running", "version": __version__})


async def health(request: Request) -> JSONResponse:
    state: AppState = request.app.state.app_state
    output = HealthOutput(
        status="healthy",
        botReady=state.bot_ready,
        timestamp=datetime.now(UTC).isoformat(),
    )
    return JSONResponse(output.model_dump(mode="json"))


async def check_user(request: Request) -> JSONResponse:
    if request.method != "POST":
        return _error_response(
            DiscordAgeError(
                code=ErrorCode.METHOD_NOT_ALLOWED,
                message="Method not allowed",
                details="Only POST requests are supported",
            )
        )

    try:
        body = await request.json()
    except ValueError:
        return _error_response(
            DiscordAgeError(code=ErrorCode.INVALID_INPUT, message="Invalid JSON body")
        )

    remote_ip = request.client.host if request.client else None
    return await _run(
        "check_user", request, lambda state: h_check_user.handle(body, remote_ip, state)
    )


async def user_age(request: Request) -> JSONResponse:
    user_id = request.path_params["user_id"]
    return await _run("user_age", request, lambda state: h_user_age.handle(user_id, state))


async def username_age(request: Request) -> JSONResponse:
    username = request.path_params["username"]
    return await _run(
        "username_age", request, lambda state: h_username_age.handle(username, state)
    )


async def guild_age(request: Request) -> JSONResponse:
    guild_id = request.path_params["guild_id"]
    return await _run("guild_age", request, lambda state: h_guild_age.handle(guild_id, state))


routes = [
    Route("/", root, methods=["GET"]),
    Route("/health", health, methods=["GET"]),
    Route(
        "/api/discord",
        check_user,
        methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    ),
    Route("/api/discord-age/{user_id}", user_age, methods=["GET"]),
    Route("/api/discord-age-username/{username}", username_age, methods=["GET"]),
    Route("/api/discord-age-guild/{guild_id}", guild_age, methods=["GET"]),
]


def create_app(settings: Settings | None = None, state: AppState | None = None) -> Starlette:
    """Build the ASGI app.

    With ``state`` given, the app serves from it directly and runs no
    lifespan; tests use this to inject an in-memory cache and stubs.
    """
    if settings is None:
        settings = state.settings if state is not None else Settings()

    app = Starlette(
        routes=routes,
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=settings.server.cors_origins,
                allow_methods=["*"],
                allow_headers=["*"],
            )
        ],
        lifespan=lifespan if state is None else None,
    )
    app.state.settings = settings
    if state is not None:
        app.state.app_state = state
    return app


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()
    _setup_logging(settings)

    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,  # Disable uvicorn's default logging; structlog handles it
    )


if __name__ == "__main__":
    main()
