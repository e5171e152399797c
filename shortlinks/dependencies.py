"""Dependency injection for shared resources and per-request context.

``AppResources`` owns the connection pool for the lifetime of one FastAPI
application. It is created by the lifespan, stored on ``app.state`` and
reached by handlers only through the dependencies below, so tests can
swap it out with ``app.dependency_overrides``.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from shortlinks.config import Settings
from shortlinks.database import SessionFactory, close_db, create_engine, create_session_factory, init_db
from shortlinks.exceptions import StorageError
from shortlinks.link_service import LinkService

LOGGER_NAME = "shortlinks"


def setup_logger(settings: Settings) -> logging.Logger:
    """Configure the service logger once."""
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(settings.LOG_LEVEL)
    return logger


class ContextLoggerAdapter(logging.LoggerAdapter):
    """Attach request context to every record, keeping per-call ``extra`` fields."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


# ============================================================================
# APPLICATION RESOURCES
# ============================================================================


class AppResources:
    """Resources shared by every request of one application instance.

    Attributes:
        settings: Application settings
        logger: Configured service logger
        engine: Pooled async engine, set by ``initialize``
        sessions: Session factory bound to ``engine``
    """

    def __init__(self, settings: Settings, logger: Optional[logging.Logger] = None) -> None:
        self.settings = settings
        self.logger = logger or setup_logger(settings)
        self.engine: Optional[AsyncEngine] = None
        self.sessions: Optional[SessionFactory] = None
        self._init_lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self.sessions is not None

    async def initialize(self) -> None:
        """Open the connection pool and create tables if configured.

        The instance only counts as initialized once table creation has
        succeeded; on failure the engine is disposed and ``StorageError``
        is raised.
        """
        async with self._init_lock:
            if self.initialized:
                return
            engine = create_engine(self.settings)
            try:
                if self.settings.CREATE_TABLES:
                    await init_db(engine)
            except (SQLAlchemyError, OSError) as exc:
                await close_db(engine)
                self.logger.error(f"Database initialization failed: {exc}")
                raise StorageError(str(exc)) from exc

            self.engine = engine
            self.sessions = create_session_factory(engine)
            self.logger.info(
                f"Connection pool ready (size={self.settings.DB_POOL_SIZE}, "
                f"timeout={self.settings.STORE_TIMEOUT_MS}ms)"
            )

    async def cleanup(self) -> None:
        """Dispose the connection pool."""
        if self.engine is not None:
            await close_db(self.engine)
        self.engine = None
        self.sessions = None


# ============================================================================
# REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request view of the shared resources plus request metadata.

    Attributes:
        resources: Application-wide resources
        request_id: Unique identifier for this request
        trace_id: Correlation ID taken from ``X-Trace-ID``
        referer: ``Referer`` header, empty string when absent
        user_agent: ``User-Agent`` header, empty string when absent
        client_ip: Client IP address
        start_time: Request start timestamp
        tags: Request tags for categorization
    """

    resources: AppResources
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    trace_id: Optional[str] = None
    referer: str = ""
    user_agent: str = ""
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=time.time)
    tags: list[str] = field(default_factory=list)

    @property
    def sessions(self) -> SessionFactory:
        assert self.resources.sessions is not None, "resources must be initialized"
        return self.resources.sessions

    @property
    def settings(self) -> Settings:
        return self.resources.settings

    @property
    def logger(self) -> ContextLoggerAdapter:
        """Shared logger with request context attached."""
        return ContextLoggerAdapter(
            self.resources.logger,
            {
                "request_id": self.request_id,
                "trace_id": self.trace_id or self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
                "tags": ",".join(self.tags),
            },
        )

    def add_tag(self, tag: str) -> None:
        if tag not in self.tags:
            self.tags.append(tag)

    def get_duration(self) -> float:
        """Request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_resources(request: Request) -> AppResources:
    resources: AppResources = request.app.state.resources
    if not resources.initialized:
        await resources.initialize()
    return resources


async def get_request_context(
    request: Request,
    resources: AppResources = Depends(get_resources),
) -> RequestContext:
    return RequestContext(
        resources=resources,
        trace_id=request.headers.get("x-trace-id"),
        referer=request.headers.get("referer", ""),
        user_agent=request.headers.get("user-agent", ""),
        client_ip=request.client.host if request.client else None,
    )


def get_link_service(ctx: RequestContext = Depends(get_request_context)) -> LinkService:
    return LinkService.from_context(ctx)
