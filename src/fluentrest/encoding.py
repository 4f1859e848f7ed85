"""Body encoding policy and response decoding helpers.

A request body goes down exactly one of three paths, decided by
``classify_body``:

- ``MULTIPART``: a non-empty list or tuple whose first item is a ``Blob`` is
  packed into a multipart/related body.
- ``JSON``: any other structured value is serialized to JSON text.
- ``PASSTHROUGH``: text, bytes, blobs, form data, files and byte streams are
  handed to the transport untouched.

The response side lives here too: lenient JSON parsing and the fallback chain
used to pick an error message from a failed response.
"""

import json
import secrets
import string
from collections.abc import Iterator, Sequence
from enum import Enum
from typing import Any

from pydantic import BaseModel

from .log_config import logger
from .types import Blob, FormData

BOUNDARY_LENGTH = 18
BOUNDARY_ALPHABET = string.ascii_letters + string.digits
UNKNOWN_ERROR_MESSAGE = "Unknown error"


class BodyKind(Enum):
    """The encoding path chosen for a request body."""

    MULTIPART = "multipart"
    JSON = "json"
    PASSTHROUGH = "passthrough"


def is_file_like(obj: Any) -> bool:
    return callable(getattr(obj, "read", None))


def is_byte_stream(obj: Any) -> bool:
    """True for async iterables and one-shot iterators (generators, readers)."""
    return hasattr(obj, "__aiter__") or isinstance(obj, Iterator)


def is_blob_array(obj: Any) -> bool:
    return isinstance(obj, list | tuple) and len(obj) > 0 and isinstance(obj[0], Blob)


def is_jsonable(obj: Any) -> bool:
    """Whether ``obj`` should be serialized to JSON rather than sent as-is."""
    if obj is None:
        return False
    return not (
        isinstance(obj, str | bytes | bytearray | memoryview | Blob | FormData)
        or is_file_like(obj)
        or is_byte_stream(obj)
    )


def classify_body(payload: Any) -> BodyKind:
    if is_blob_array(payload):
        return BodyKind.MULTIPART
    if is_jsonable(payload):
        return BodyKind.JSON
    return BodyKind.PASSTHROUGH


def create_boundary(length: int = BOUNDARY_LENGTH) -> str:
    """Returns a random alphanumeric token usable as a multipart boundary."""
    return "".join(secrets.choice(BOUNDARY_ALPHABET) for _ in range(length))


def encode_multipart(blobs: Sequence[Blob], boundary: str) -> bytes:
    """Packs blobs into a multipart/related body delimited by ``boundary``.

    Each part carries only a ``Content-Type`` line taken from the blob; the
    body ends with the closing ``--boundary--`` delimiter line.
    """
    parts: list[bytes] = []
    for blob in blobs:
        parts.append(f"--{boundary}\r\n".encode())
        parts.append(f"Content-Type: {blob.type}\r\n".encode())
        parts.append(b"\r\n")
        parts.append(blob.content)
        parts.append(b"\r\n")
    parts.append(f"--{boundary}--\r\n".encode())
    return b"".join(parts)


def _json_default(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    to_json = getattr(obj, "to_json", None)
    if callable(to_json):
        return to_json()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def serialize_json(payload: Any) -> str:
    """Serializes ``payload`` to compact JSON text.

    Raises:
        TypeError: If a value cannot be represented in JSON.
        ValueError: If ``payload`` contains a circular reference.
    """
    return json.dumps(
        payload, default=_json_default, separators=(",", ":"), ensure_ascii=False
    )


def parse_json(text: str) -> Any:
    """Parses response text as JSON, returning None when it is not valid JSON."""
    if not text:
        return None
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        logger.trace("Response body is not valid JSON; treating payload as None.")
        return None


def extract_error_message(data: Any, text: str) -> str:
    """Picks a human-readable message for a failed response.

    The ``error`` field of a JSON object wins, then a bare JSON string. When the
    body did not parse at all the raw text is used. Everything else falls back to
    ``"Unknown error"``.
    """
    if isinstance(data, dict):
        error = data.get("error")
        if error:
            return error if isinstance(error, str) else serialize_json(error)
        return UNKNOWN_ERROR_MESSAGE
    if isinstance(data, str):
        return data
    if data is None and text:
        return text
    return UNKNOWN_ERROR_MESSAGE
