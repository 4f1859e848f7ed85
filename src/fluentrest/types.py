# fluentrest/types.py
"""Core value types for the fluentrest library.

This module defines the binary and form containers a request body can be built
from, plus type aliases for hooks, credential modes and accepted body values.
"""

from collections.abc import AsyncIterable, Callable, Iterable, Iterator
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator

if TYPE_CHECKING:
    from .request import RequestAPI


class Blob(BaseModel):
    """Immutable binary payload with a declared media type.

    The media type is normalized to lowercase, so code that needs exact casing
    (such as a multipart ``Content-Type`` header) must keep its own copy.
    """

    model_config = ConfigDict(frozen=True)

    content: bytes = b""
    type: str = ""

    @field_validator("type")
    @classmethod
    def _lowercase_type(cls, value: str) -> str:
        return value.lower()

    @property
    def size(self) -> int:
        return len(self.content)


class FormData:
    """Ordered multipart/form-data entries, encoded by httpx on dispatch.

    Text values become plain fields; ``Blob`` values become file parts named
    ``filename`` (``"blob"`` when omitted).
    """

    def __init__(self, fields: dict[str, str] | None = None):
        self._entries: list[tuple[str, str | Blob, str | None]] = []
        for name, value in (fields or {}).items():
            self.append(name, value)

    def append(self, name: str, value: str | Blob, filename: str | None = None) -> None:
        if isinstance(value, Blob):
            filename = filename or "blob"
        else:
            value, filename = str(value), None
        self._entries.append((name, value, filename))

    def set(self, name: str, value: str | Blob, filename: str | None = None) -> None:
        self.delete(name)
        self.append(name, value, filename)

    def get(self, name: str) -> str | Blob | None:
        for entry_name, value, _ in self._entries:
            if entry_name == name:
                return value
        return None

    def delete(self, name: str) -> None:
        self._entries = [entry for entry in self._entries if entry[0] != name]

    def __iter__(self) -> Iterator[tuple[str, str | Blob]]:
        return ((name, value) for name, value, _ in self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def to_httpx(
        self,
    ) -> tuple[dict[str, list[str]], list[tuple[str, tuple[str, bytes, str]]]]:
        """Split the entries into httpx ``data`` and ``files`` arguments."""
        data: dict[str, list[str]] = {}
        files: list[tuple[str, tuple[str, bytes, str]]] = []
        for name, value, filename in self._entries:
            if isinstance(value, Blob):
                files.append(
                    (
                        name,
                        (
                            filename or "blob",
                            value.content,
                            value.type or "application/octet-stream",
                        ),
                    )
                )
            else:
                data.setdefault(name, []).append(value)
        return data, files


Credentials = Literal["omit", "same-origin", "include"]
"""Cookie policy for a request, mirroring the browser fetch ``credentials`` option."""

CREDENTIAL_MODES: frozenset[str] = frozenset({"omit", "same-origin", "include"})

Hook = Callable[["RequestAPI"], Any]
"""Type alias for a pre-dispatch hook.

Hooks are called with the pending request builder right before it is sent, in
registration order. A hook may be a plain function or a coroutine function;
awaitable results are awaited before the next hook runs.

Args:
    request (RequestAPI): The builder about to be sent. Hooks modify its
        headers, query, body or URL in place.
Return:
    Any: Ignored.
"""

BodyTypes = (
    str
    | bytes
    | bytearray
    | memoryview
    | Blob
    | FormData
    | list[Blob]
    | AsyncIterable[bytes]
    | Iterable[Any]
    | dict[str, Any]
    | BaseModel
    | int
    | float
    | bool
    | None
)
"""Values accepted by ``RequestAPI.body`` and ``RequestAPI.send``."""
