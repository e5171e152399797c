"""Link service layer - store operations behind the HTTP handlers.

Architecture Overview
=====================
::
    ┌──────────────────────────────────────────────┐
    │                 LinkService                  │
    │  • validate & normalise target URLs          │
    │  • create / resolve / update links           │
    │  • record & list redirect statistics         │
    └──────────────────────┬───────────────────────┘
                           │ bounded(…, STORE_TIMEOUT_MS)
                           ▼
    ┌──────────────────────────────────────────────┐
    │        PostgreSQL (pooled AsyncSession)      │
    │   links(id, target_url)                      │
    │   link_statistics(link_id, referer, ua, …)   │
    └──────────────────────────────────────────────┘

Redirect Flow
=============
::
    ┌─────────────┐
    │  GET /:id   │
    └──────┬──────┘
           ▼
    ┌─────────────┐     none      ┌─────────────┐
    │ resolve_link├──────────────►│ 404         │
    └──────┬──────┘               └─────────────┘
           ▼
    ┌─────────────┐
    │ 307 Location│  (response built first)
    └──────┬──────┘
           ▼
    ┌─────────────────┐
    │ record_statistic│  background, failures only logged
    └─────────────────┘

Key Behaviours
===============
- Every store operation borrows one pooled session for one statement and
  is bounded by the configured deadline.
- Timeouts raise ``DeadlineExceededError``; database failures are wrapped
  in ``StorageError`` with the driver's message.
- Identifier collisions are not retried: the primary-key violation
  surfaces as ``StorageError``.
- ``update_link`` on an unknown id fails the single-row fetch and surfaces
  as ``StorageError`` (500), not ``LinkNotFoundError``.
- ``record_statistic`` never raises.

Example:
    >>> service = LinkService.from_context(ctx)
    >>> link = await service.create_link(LinkTarget(target_url="https://example.com"))
    >>> link.target_url
    'https://example.com/'
"""

import time
from typing import TYPE_CHECKING, Any, Awaitable, Optional, TypeVar

from prometheus_client import Counter, Histogram
from pydantic import AnyUrl, TypeAdapter, ValidationError
from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

from shortlinks.enums import LinkOperation, RequestStatus
from shortlinks.exceptions import LinkNotFoundError, MalformedURLError, ShortenerError, StorageError
from shortlinks.identifiers import generate_link_id
from shortlinks.models import Link, LinkStatistic
from shortlinks.schemas import CountedLinkStatistic, LinkResponse, LinkTarget
from shortlinks.timeouts import bounded

if TYPE_CHECKING:
    from shortlinks.dependencies import RequestContext

__all__ = ["LinkService", "normalize_target_url"]

T = TypeVar("T")

_URL_ADAPTER = TypeAdapter(AnyUrl)


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

LINK_OPERATIONS_TOTAL = Counter(
    "shortlinks_link_operations_total",
    "Link operations by outcome",
    ["operation", "status"],
)
STORE_OPERATION_DURATION = Histogram(
    "shortlinks_store_operation_duration_seconds",
    "Time spent in bounded store operations",
    ["operation"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.2, 0.3, 0.5],
)
STATISTICS_WRITE_FAILURES_TOTAL = Counter(
    "shortlinks_statistics_write_failures_total",
    "Redirect statistics that could not be stored",
)


def normalize_target_url(raw: str) -> str:
    """Return the canonical form of an absolute URL.

    Raises:
        MalformedURLError: If ``raw`` is not a well-formed absolute URL.
    """
    if not raw:
        raise MalformedURLError()
    try:
        return str(_URL_ADAPTER.validate_python(raw))
    except ValidationError as exc:
        raise MalformedURLError() from exc


class LinkService:
    """Store-backed operations for the link handlers.

    Instances are cheap and created per request from a ``RequestContext``;
    the session factory they borrow from is shared by the whole app.
    """

    def __init__(self, ctx: "RequestContext"):
        self._sessions = ctx.sessions
        self._logger = ctx.logger
        self._settings = ctx.settings
        self._timeout = ctx.settings.store_timeout
        self._ctx = ctx

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "LinkService":
        return cls(ctx)

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def create_link(self, target: LinkTarget) -> LinkResponse:
        """Store ``target`` under a freshly generated identifier.

        Raises:
            MalformedURLError: Target is not an absolute URL.
            DeadlineExceededError: Insert did not finish in time.
            StorageError: Insert failed, including identifier collisions.
        """
        target_url = self._validate(LinkOperation.CREATE, target.target_url)
        link_id = generate_link_id()

        self._logger.debug(f"Inserting link {link_id} -> {target_url}")
        row = await self._run(LinkOperation.CREATE, self._insert_link(link_id, target_url))
        return LinkResponse.model_validate(row)

    async def resolve_link(self, link_id: str) -> Link:
        """Look up a link by exact identifier.

        Raises:
            LinkNotFoundError: No link has this identifier.
        """
        link = await self._run(LinkOperation.RESOLVE, self._select_link(link_id))
        if link is None:
            LINK_OPERATIONS_TOTAL.labels(operation=LinkOperation.RESOLVE, status=RequestStatus.NOT_FOUND).inc()
            raise LinkNotFoundError()
        return link

    async def update_link(self, link_id: str, target: LinkTarget) -> LinkResponse:
        """Point an existing identifier at a new target.

        An unknown identifier is reported as ``StorageError``: the update
        expects exactly one returned row and fails when there is none.
        """
        target_url = self._validate(LinkOperation.UPDATE, target.target_url)

        self._logger.debug(f"Updating link {link_id} -> {target_url}")
        row = await self._run(LinkOperation.UPDATE, self._update_link(link_id, target_url))
        return LinkResponse.model_validate(row)

    async def record_statistic(self, link_id: str, referer: str, user_agent: str) -> None:
        """Append one redirect to ``link_statistics``. Failures are only logged."""
        try:
            await self._run(
                LinkOperation.RECORD_STATISTIC,
                self._insert_statistic(link_id, referer, user_agent),
            )
        except ShortenerError as exc:
            STATISTICS_WRITE_FAILURES_TOTAL.inc()
            self._logger.warning(
                f"Failed to save statistics for link {link_id}: {exc}",
                extra={"operation": LinkOperation.RECORD_STATISTIC, "link_id": link_id},
            )
        except Exception:
            STATISTICS_WRITE_FAILURES_TOTAL.inc()
            self._logger.exception(f"Unexpected error saving statistics for link {link_id}")

    async def list_statistics(self, link_id: str) -> list[CountedLinkStatistic]:
        rows = await self._run(LinkOperation.LIST_STATISTICS, self._select_statistics(link_id))
        return [CountedLinkStatistic.model_validate(dict(row._mapping)) for row in rows]

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    def _validate(self, operation: LinkOperation, raw: str) -> str:
        try:
            return normalize_target_url(raw)
        except MalformedURLError:
            LINK_OPERATIONS_TOTAL.labels(operation=operation, status=RequestStatus.MALFORMED_URL).inc()
            self._logger.info(f"Rejected malformed url: {raw!r}")
            raise

    async def _run(self, operation: LinkOperation, store_call: Awaitable[T]) -> T:
        """Run one store call under the deadline and record its outcome."""
        start_time = time.perf_counter()
        try:
            result = await bounded(store_call, self._timeout)
        except ShortenerError as exc:
            LINK_OPERATIONS_TOTAL.labels(operation=operation, status=exc.status).inc()
            self._logger.error(f"Store operation {operation} failed: {exc}")
            raise
        except (SQLAlchemyError, OSError) as exc:
            LINK_OPERATIONS_TOTAL.labels(operation=operation, status=RequestStatus.ERROR).inc()
            self._logger.error(f"Store operation {operation} failed: {exc}")
            raise StorageError(str(exc)) from exc
        finally:
            STORE_OPERATION_DURATION.labels(operation=operation).observe(time.perf_counter() - start_time)

        LINK_OPERATIONS_TOTAL.labels(operation=operation, status=RequestStatus.SUCCESS).inc()
        return result

    async def _insert_link(self, link_id: str, target_url: str) -> Any:
        async with self._sessions() as session:
            result = await session.execute(
                insert(Link)
                .values(id=link_id, target_url=target_url)
                .returning(Link.id, Link.target_url)
            )
            row = result.one()
            await session.commit()
            return row

    async def _select_link(self, link_id: str) -> Optional[Link]:
        async with self._sessions() as session:
            result = await session.execute(select(Link).where(Link.id == link_id))
            return result.scalar_one_or_none()

    async def _update_link(self, link_id: str, target_url: str) -> Any:
        async with self._sessions() as session:
            result = await session.execute(
                update(Link)
                .where(Link.id == link_id)
                .values(target_url=target_url)
                .returning(Link.id, Link.target_url)
            )
            row = result.one()
            await session.commit()
            return row

    async def _insert_statistic(self, link_id: str, referer: str, user_agent: str) -> None:
        async with self._sessions() as session:
            await session.execute(
                insert(LinkStatistic).values(link_id=link_id, referer=referer, user_agent=user_agent)
            )
            await session.commit()

    async def _select_statistics(self, link_id: str) -> list[Any]:
        count = func.count(LinkStatistic.id).label("count")
        async with self._sessions() as session:
            result = await session.execute(
                select(count, LinkStatistic.referer, LinkStatistic.user_agent)
                .where(LinkStatistic.link_id == link_id)
                .group_by(LinkStatistic.referer, LinkStatistic.user_agent)
                .order_by(count.desc())
            )
            return list(result.all())
