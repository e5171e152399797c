"""Short identifier generation.

An identifier is the decimal text of a random 32-bit unsigned integer,
encoded with the URL-safe base64 alphabet and stripped of ``=`` padding,
e.g. ``1234`` → ``"MTIzNA"``. Identifiers are at most 14 characters and
always valid as a path segment.

Uniqueness is not checked here; the ``links`` primary key rejects a
collision at insert time.
"""

import base64
import random

__all__ = ["ID_SPACE", "encode_link_id", "generate_link_id"]

ID_SPACE = 2**32


def encode_link_id(value: int) -> str:
    assert isinstance(value, int) and 0 <= value < ID_SPACE, f"value must be in [0, 2**32), got {value!r}"
    encoded = base64.urlsafe_b64encode(str(value).encode("ascii"))
    return encoded.decode("ascii").rstrip("=")


def generate_link_id() -> str:
    return encode_link_id(random.randrange(ID_SPACE))
