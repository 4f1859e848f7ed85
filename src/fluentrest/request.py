"""Fluent request builder for the fluentrest library.

A ``RequestAPI`` accumulates the method, URL, headers, query string and body of
a single request through chainable calls, then ``send`` runs the client's hooks,
dispatches the request through httpx and resolves to the parsed JSON payload or
raises a ``RestError``.
"""

import inspect
from collections.abc import Iterable, Mapping
from typing import Any, overload

import httpx
from pydantic import BaseModel, ConfigDict, Field

from .config import get_settings
from .encoding import (
    BodyKind,
    classify_body,
    create_boundary,
    encode_multipart,
    extract_error_message,
    is_byte_stream,
    is_file_like,
    parse_json,
    serialize_json,
)
from .exceptions import ConfigurationError, RestError
from .log_config import logger
from .types import CREDENTIAL_MODES, Blob, BodyTypes, Credentials, FormData, Hook

_UNSET: Any = object()


class RequestInit(BaseModel):
    """Mutable state of a pending request, apart from its URL."""

    method: str
    headers: httpx.Headers = Field(default_factory=httpx.Headers)
    content: Any | None = None
    credentials: Credentials | None = None

    model_config = ConfigDict(arbitrary_types_allowed=True)


class RequestAPI:
    """Chainable builder for one request against a JSON REST API.

    Instances are normally obtained from ``RestAPI.get``/``post``/``put``/
    ``patch``/``delete``. Subclass it and pass the subclass as ``request_class``
    to ``create_rest_api`` to add API-specific helpers.

    Attributes:
        url: The target ``httpx.URL``, including query parameters.
        init: The method, headers, body and credentials mode.
        hooks: The client's hook list, shared by reference, so hooks registered
            after this builder was created still run on ``send``.
    """

    def __init__(
        self,
        method: str,
        url: httpx.URL | str,
        headers: httpx.Headers | Mapping[str, str] | None = None,
        hooks: list[Hook] | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the builder.

        Args:
            method: HTTP method; fixed for the lifetime of the builder.
            url: Absolute request URL.
            headers: Default headers; copied, never mutated.
            hooks: Live hook list to run before each dispatch.
            http_client: Transport to send through. When omitted, each ``send``
                uses a short-lived ``httpx.AsyncClient``.
        """
        self.url = httpx.URL(url)
        self.init = RequestInit(method=method.upper(), headers=httpx.Headers(headers))
        self.hooks: list[Hook] = hooks if hooks is not None else []
        self._http_client = http_client
        self.header("Accept", "application/json")

    @property
    def method(self) -> str:
        return self.init.method

    @property
    def headers(self) -> httpx.Headers:
        return self.init.headers

    @property
    def content(self) -> Any | None:
        return self.init.content

    @overload
    def header(self, key: str) -> str | None: ...

    @overload
    def header(self, key: str, value: str) -> "RequestAPI": ...

    @overload
    def header(
        self, key: Mapping[str, str] | Iterable[tuple[str, str]]
    ) -> "RequestAPI": ...

    def header(
        self,
        key: str | Mapping[str, str] | Iterable[tuple[str, str]],
        value: str | None = None,
    ) -> "str | None | RequestAPI":
        """Reads or sets request headers.

        ``header(name)`` returns the current value or None. ``header(name, value)``
        and ``header(mapping)`` overwrite existing values and return the builder.
        """
        if isinstance(key, str):
            if value is None:
                return self.init.headers.get(key)
            self.init.headers[key] = value
            return self
        items = key.items() if isinstance(key, Mapping) else key
        for name, item_value in items:
            self.init.headers[name] = item_value
        return self

    def query(self, key: str | Mapping[str, Any], value: Any = None) -> "RequestAPI":
        """Sets query parameters, replacing any existing values of the same name."""
        params = {key: value} if isinstance(key, str) else key
        for name, item_value in params.items():
            self.url = self.url.copy_set_param(name, item_value)
        return self

    def credentials(self, mode: Credentials) -> "RequestAPI":
        """Controls whether the transport's cookies accompany the request.

        ``"omit"`` never sends them, ``"include"`` always does, and
        ``"same-origin"`` (the default) only when the URL shares scheme, host and
        port with the transport's base URL.
        """
        if mode not in CREDENTIAL_MODES:
            raise ConfigurationError(
                f"Invalid credentials mode {mode!r}; expected one of "
                f"{', '.join(sorted(CREDENTIAL_MODES))}."
            )
        self.init.credentials = mode
        return self

    def body(self, payload: BodyTypes) -> "RequestAPI":
        """Sets the request body, encoding it according to its kind.

        A list of ``Blob`` objects becomes a multipart/related body, structured
        values become JSON (``Content-Type: application/json`` is added unless a
        content type is already set), and anything else is stored as given.

        Raises:
            TypeError: If a structured value cannot be serialized to JSON.
            ValueError: If a structured value contains a circular reference.
        """
        kind = classify_body(payload)
        logger.trace(f"Request body classified as {kind.value}")
        if kind is BodyKind.MULTIPART:
            boundary = create_boundary()
            content_type = f"multipart/related; boundary={boundary}"
            payload = Blob(
                content=encode_multipart(payload, boundary), type=content_type
            )
            # Blob lowercases its type; the header keeps the exact casing
            self.header("Content-Type", content_type)
        elif kind is BodyKind.JSON:
            payload = serialize_json(payload)
            if not self.header("Content-Type"):
                self.header("Content-Type", "application/json")
        self.init.content = payload
        return self

    def _is_same_origin(self) -> bool:
        if self._http_client is None:
            return False
        base = self._http_client.base_url
        if not base.host:
            return False
        return (self.url.scheme, self.url.host, self.url.port) == (
            base.scheme,
            base.host,
            base.port,
        )

    def _cookies(self) -> httpx.Cookies | None:
        if self._http_client is None:
            return None
        mode = self.init.credentials or "same-origin"
        if mode == "omit" or (mode == "same-origin" and not self._is_same_origin()):
            return None
        return self._http_client.cookies

    def build_request(self) -> httpx.Request:
        """Builds the ``httpx.Request`` that ``send`` dispatches for the current state."""
        headers = httpx.Headers(self.init.headers)
        if self._http_client is not None:
            for name, value in self._http_client.headers.items():
                if name not in headers:
                    headers[name] = value
        elif "User-Agent" not in headers:
            headers["User-Agent"] = get_settings().user_agent

        content = self.init.content
        data: dict[str, list[str]] | None = None
        files: list[tuple[str, tuple[str, bytes, str]]] | None = None
        if isinstance(content, Blob):
            if content.type and not headers.get("Content-Type"):
                headers["Content-Type"] = content.type
            content = content.content
        elif isinstance(content, FormData):
            form_data, form_files = content.to_httpx()
            data, files = form_data or None, form_files or None
            content = None
        elif isinstance(content, bytearray | memoryview):
            content = bytes(content)
        elif is_file_like(content):
            # Read once and keep the bytes so a repeated send carries the same body
            content = self.init.content = content.read()
        elif is_byte_stream(content) and not hasattr(content, "__aiter__"):
            content = self.init.content = b"".join(content)

        return httpx.Request(
            self.init.method,
            self.url,
            headers=headers,
            content=content,
            data=data,
            files=files,
            cookies=self._cookies(),
        )

    async def _run_hooks(self) -> None:
        hooks = list(self.hooks)  # later (un)registrations do not affect this send
        if not hooks:
            return
        logger.debug(
            f"Executing {len(hooks)} hooks for {self.init.method} {self.url}"
        )
        for hook in hooks:
            try:
                result = hook(self)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    f"Error executing hook {getattr(hook, '__name__', repr(hook))}: {e}"
                )
                raise

    async def _dispatch(self, request: httpx.Request) -> httpx.Response:
        logger.debug(f"Sending request: {request.method} {request.url}")
        logger.trace(f"Request Headers: {request.headers}")
        if self._http_client is not None:
            response = await self._http_client.send(request)
        else:
            settings = get_settings()
            async with httpx.AsyncClient(
                timeout=settings.request_timeout,
                follow_redirects=settings.follow_redirects,
            ) as client:
                response = await client.send(request)
        logger.debug(f"Received response: {response.status_code} for {request.url}")
        return response

    async def send(self, body: BodyTypes = _UNSET) -> Any:
        """Runs the hooks, sends the request and returns the parsed JSON payload.

        Args:
            body: Optional payload, applied through ``body()`` first. Passing
                ``None`` explicitly clears a previously set body.

        Returns:
            Any: The decoded JSON value, or None for empty or non-JSON bodies.

        Raises:
            RestError: If the response status is outside the 2xx range.
            httpx.RequestError: On transport failures; not wrapped.
        """
        if body is not _UNSET:
            self.body(body)

        await self._run_hooks()

        request = self.build_request()
        response = await self._dispatch(request)
        text = response.text
        data = parse_json(text)

        if response.is_success:
            return data

        message = extract_error_message(data, text)
        logger.warning(
            f"Request failed with status {response.status_code} for "
            f"{request.method} {request.url}: {message}"
        )
        raise RestError(
            response.status_code, message, response=response, request=request
        )
