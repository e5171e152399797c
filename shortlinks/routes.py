"""FastAPI route definitions for the shortlinks REST API.

API Endpoint Overview
=====================
::
    GET   /health
        └─ "Service is healthy" (200)

    POST  /create
        ├─ LinkTarget (request body)
        └─ LinkResponse (200) or 409/500

    GET   /:id/statistics
        └─ list[CountedLinkStatistic] (200) or 500

    GET   /:id
        └─ 307 Redirect or 404/500

    PATCH /:id
        ├─ LinkTarget (request body)
        └─ LinkResponse (200) or 409/500

Request Flow Diagram
====================
::
    ┌─────────────┐
    │  HTTP       │
    │  Request    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Parse body  │
    │ (Pydantic)  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Inject      │
    │ LinkService │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Bounded     │
    │ store call  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Response or │
    │ ShortenerErr│
    │ → plain text│
    └─────────────┘

Key Behaviours
===============
- Service errors propagate as ``ShortenerError`` and are rendered by the
  exception handler registered in ``shortlinks.main``.
- The redirect response does not wait for the statistics insert.
- ``/health`` does not touch the database.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import PlainTextResponse, RedirectResponse

from shortlinks.dependencies import LOGGER_NAME, RequestContext, get_link_service, get_request_context
from shortlinks.link_service import LinkService
from shortlinks.schemas import CountedLinkStatistic, LinkResponse, LinkTarget

__all__ = ["router"]

router = APIRouter()

HEALTHY_MESSAGE = "Service is healthy"

logger = logging.getLogger(LOGGER_NAME)


@router.get("/health", response_class=PlainTextResponse, tags=["health"])
async def health_check() -> str:
    logger.debug("Health check requested")
    return HEALTHY_MESSAGE


@router.post("/create", response_model=LinkResponse, tags=["links"])
async def create_link(
    payload: LinkTarget,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> LinkResponse:
    ctx.add_tag("link_creation")
    link = await service.create_link(payload)
    ctx.logger.info(
        f"Link created: {link.id} -> {link.target_url}",
        extra={"operation": "create_link", "duration_ms": ctx.get_duration()},
    )
    return link


@router.get("/{link_id}/statistics", response_model=list[CountedLinkStatistic], tags=["links"])
async def get_link_statistics(
    link_id: str,
    service: LinkService = Depends(get_link_service),
) -> list[CountedLinkStatistic]:
    return await service.list_statistics(link_id)


@router.get("/{link_id}", tags=["redirect"])
async def redirect(
    link_id: str,
    background_tasks: BackgroundTasks,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> RedirectResponse:
    ctx.add_tag("redirect")
    link = await service.resolve_link(link_id)

    response = RedirectResponse(url=link.target_url, status_code=307)
    background_tasks.add_task(service.record_statistic, link.id, ctx.referer, ctx.user_agent)

    ctx.logger.info(
        f"Redirect: {link_id} -> {link.target_url}",
        extra={"operation": "redirect", "duration_ms": ctx.get_duration()},
    )
    return response


@router.patch("/{link_id}", response_model=LinkResponse, tags=["links"])
async def update_link(
    link_id: str,
    payload: LinkTarget,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> LinkResponse:
    ctx.add_tag("link_update")
    link = await service.update_link(link_id, payload)
    ctx.logger.info(
        f"Link updated: {link.id} -> {link.target_url}",
        extra={"operation": "update_link", "duration_ms": ctx.get_duration()},
    )
    return link
