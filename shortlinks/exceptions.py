"""Error taxonomy for shortlinks.

Every error raised on the request path derives from ``ShortenerError`` and
carries the HTTP status it maps to. ``shortlinks.main`` renders them as
plain-text responses with ``str(exc)`` as the body.
"""

from shortlinks.enums import RequestStatus

__all__ = [
    "ShortenerError",
    "MalformedURLError",
    "LinkNotFoundError",
    "DeadlineExceededError",
    "StorageError",
]


class ShortenerError(Exception):
    status_code: int = 500
    status: RequestStatus = RequestStatus.ERROR
    default_message: str = "internal error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class MalformedURLError(ShortenerError):
    status_code = 409
    status = RequestStatus.MALFORMED_URL
    default_message = "malformed url"


class LinkNotFoundError(ShortenerError):
    status_code = 404
    status = RequestStatus.NOT_FOUND
    default_message = "Link not found"


class DeadlineExceededError(ShortenerError):
    """A store operation did not finish before its deadline."""

    status = RequestStatus.TIMEOUT
    default_message = "deadline has elapsed"


class StorageError(ShortenerError):
    """The database rejected or failed an operation."""
