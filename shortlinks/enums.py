"""Shared enums for the shortlinks service.

Using enums instead of string literals keeps metric labels and log fields
consistent across the codebase.
"""

from enum import StrEnum

__all__ = ["LinkOperation", "RequestStatus"]


class LinkOperation(StrEnum):
    """Store-backed operations, used as the ``operation`` metric label."""

    CREATE = "create"
    RESOLVE = "resolve"
    UPDATE = "update"
    RECORD_STATISTIC = "record_statistic"
    LIST_STATISTICS = "list_statistics"


class RequestStatus(StrEnum):
    """Outcome of a link operation."""

    SUCCESS = "success"
    MALFORMED_URL = "malformed_url"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    ERROR = "error"
