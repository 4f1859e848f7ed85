"""Client factory for the fluentrest library.

This module provides ``create_rest_api`` and the ``RestAPI`` client it returns.
A client is bound to a base URL and a set of default headers; its method
accessors hand out ``RequestAPI`` builders that share the client's transport and
its ordered list of pre-dispatch hooks.

Example:
```python
api = create_rest_api("https://api.example.com")
users = await api.get("/users").query("active", "true").send()
user = await api.post("/users").send({"name": "Alice"})
await api.delete("/users").query({"id": 123}).send()
```
"""

import ssl
from collections.abc import Callable, Mapping
from typing import Self

import certifi
import httpx

from .config import RestClientSettings, get_settings
from .log_config import logger
from .request import RequestAPI
from .types import Hook


def resolve_url(base_url: str, path: str) -> str:
    """Joins ``path`` onto ``base_url``.

    Paths containing ``//`` (absolute or protocol-relative URLs) are returned
    verbatim. Anything else is joined with exactly one ``/`` between the base and
    the path.
    """
    if "//" in path:
        return path
    if not path.startswith("/"):
        path = f"/{path}"
    return f"{base_url.rstrip('/')}{path}"


class RestAPI:
    """Asynchronous client for a JSON REST API rooted at a base URL.

    Attributes:
        base_url: The base URL without trailing slashes.
        headers: Default headers copied into every new request.
        hooks: Ordered hooks run before every request sent by this client's
            builders. Builders hold this list by reference.
        request_class: The builder class returned by the method accessors.
        _http_client: The underlying httpx.AsyncClient.
        _should_close_client: Whether this instance owns ``_http_client``.
    """

    def __init__(
        self,
        base_url: str,
        headers: httpx.Headers | Mapping[str, str] | None = None,
        request_class: type[RequestAPI] = RequestAPI,
        *,
        settings: RestClientSettings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the RestAPI client.

        Args:
            base_url: The base URL requests are resolved against.
            headers: Optional default headers for every request.
            request_class: ``RequestAPI`` subclass used for new builders.
            settings: Transport settings; defaults to ``get_settings()``.
            http_client: Optional pre-configured httpx.AsyncClient instance. It
                is not closed by ``aclose``.
        """
        self.base_url: str = base_url.rstrip("/")
        self.headers = httpx.Headers(headers)
        self.hooks: list[Hook] = []
        self.request_class = request_class
        self._settings = settings or get_settings()

        self._should_close_client = http_client is None
        self._http_client = http_client or self._create_default_http_client()

        logger.debug(f"RestAPI initialized for {self.base_url}")

    def _create_default_http_client(self) -> httpx.AsyncClient:
        """Create a default httpx.AsyncClient with configured settings.

        Returns:
            httpx.AsyncClient: HTTP client with certifi SSL verification,
                timeout, redirect policy and user agent header.
        """
        try:
            verify_ssl: ssl.SSLContext | bool = ssl.create_default_context(
                cafile=certifi.where()
            )
            logger.trace("Using certifi SSL context.")
        except (OSError, ssl.SSLError):
            verify_ssl = True
            logger.warning(
                "certifi bundle failed to load. Using default SSL verification."
            )

        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self._settings.request_timeout,
            follow_redirects=self._settings.follow_redirects,
            verify=verify_ssl,
            headers={"User-Agent": self._settings.user_agent},
        )

    def hook(self, fn: Hook) -> Callable[[], None]:
        """Registers ``fn`` to run before every request.

        Returns:
            Callable[[], None]: Unsubscribes this registration. Calling it again
                is a no-op.
        """
        self.hooks.append(fn)
        registered = True
        logger.debug(
            f"Hook {getattr(fn, '__name__', repr(fn))} registered "
            f"({len(self.hooks)} total)"
        )

        def unsubscribe() -> None:
            nonlocal registered
            if not registered:
                return
            registered = False
            for index, hook in enumerate(self.hooks):
                if hook is fn:
                    del self.hooks[index]
                    logger.debug(f"Hook {getattr(fn, '__name__', repr(fn))} removed")
                    return

        return unsubscribe

    def _request(self, method: str, path: str) -> RequestAPI:
        url = httpx.URL(resolve_url(self.base_url, path))
        if not url.scheme:
            url = httpx.URL(self.base_url).join(url)
        return self.request_class(
            method,
            url,
            self.headers,
            self.hooks,
            http_client=self._http_client,
        )

    def get(self, path: str) -> RequestAPI:
        return self._request("GET", path)

    def post(self, path: str) -> RequestAPI:
        return self._request("POST", path)

    def put(self, path: str) -> RequestAPI:
        return self._request("PUT", path)

    def patch(self, path: str) -> RequestAPI:
        return self._request("PATCH", path)

    def delete(self, path: str) -> RequestAPI:
        return self._request("DELETE", path)

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._should_close_client and not self._http_client.is_closed:
            await self._http_client.aclose()
            logger.debug(f"RestAPI internal HTTP client closed for {self.base_url}")

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        await self.aclose()


def create_rest_api(
    base_url: str,
    headers: httpx.Headers | Mapping[str, str] | None = None,
    request_class: type[RequestAPI] = RequestAPI,
    *,
    settings: RestClientSettings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> RestAPI:
    """Creates a client for the JSON REST API at ``base_url``.

    Args:
        base_url: The base URL; trailing slashes are ignored.
        headers: Default headers sent with every request.
        request_class: ``RequestAPI`` subclass returned by the method accessors.
        settings: Transport settings for the default httpx client.
        http_client: Optional externally managed httpx.AsyncClient.

    Returns:
        RestAPI: The client, exposing ``hook`` and ``get``/``post``/``put``/
            ``patch``/``delete``.
    """
    return RestAPI(
        base_url,
        headers,
        request_class,
        settings=settings,
        http_client=http_client,
    )
