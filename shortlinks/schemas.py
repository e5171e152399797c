"""Pydantic schemas for request/response validation in shortlinks.

Field names are snake_case in Python and camelCase on the wire.

Schema Hierarchy
=================
::
    LinkTarget (Input)
    └─ targetUrl: str

    LinkResponse (Output)
    ├─ id: str
    └─ targetUrl: str

    CountedLinkStatistic (Output)
    ├─ count: int
    ├─ referer: str | None
    └─ userAgent: str | None

Key Behaviours
===============
- ``targetUrl`` is accepted as any string here; well-formedness is checked
  by the service so that a bad URL maps to 409 rather than 422.
- Models are configured for ORM attribute mapping.

Classes:
    LinkTarget:  Body of create and update requests.
    LinkResponse:  A stored link.
    CountedLinkStatistic:  Redirect count per (referer, user agent) pair.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

__all__ = [
    "LinkTarget",
    "LinkResponse",
    "CountedLinkStatistic",
]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class LinkTarget(CamelModel):
    target_url: str


class LinkResponse(CamelModel):
    id: str
    target_url: str


class CountedLinkStatistic(CamelModel):
    count: int
    referer: str | None = None
    user_agent: str | None = None
