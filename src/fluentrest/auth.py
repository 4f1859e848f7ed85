"""Authentication hooks for fluentrest clients.

Each class here is a hook: register an instance with ``RestAPI.hook`` and it
adds an ``Authorization`` header to every request just before dispatch.

```python
api = create_rest_api("https://api.example.com")
api.hook(StaticTokenAuth("my-token"))
```
"""

import asyncio
from typing import TYPE_CHECKING

import httpx

from .exceptions import AuthError, ConfigurationError
from .log_config import logger

if TYPE_CHECKING:
    from .request import RequestAPI


class StaticTokenAuth:
    """Hook adding a static Bearer token.

    Suitable for APIs that use a pre-issued, long-lived API token (e.g., a
    personal access token).

    Attributes:
        _token: The static API token.
    """

    def __init__(self, token: str | None):
        """Initializes StaticTokenAuth with the provided API token.

        Raises:
            ConfigurationError: If the token is None or empty.
        """
        if not token:
            raise ConfigurationError("StaticTokenAuth requires a non-empty 'token'.")
        self._token: str = token

    def __call__(self, request: "RequestAPI") -> None:
        logger.trace("Authenticating request using StaticTokenAuth.")
        request.header("Authorization", f"Bearer {self._token}")


class ClientCredentialsAuth:
    """Hook using the OAuth2 Client Credentials Grant Flow.

    The first request fetches a Bearer token from ``token_url`` using the client
    id and secret; later requests reuse it. A lock ensures concurrent requests
    trigger a single token fetch.

    Attributes:
        _client_id: The OAuth2 client ID.
        _client_secret: The OAuth2 client secret.
        _token_url: The URL of the OAuth2 token endpoint.
        _access_token: The currently active access token.
        _token_client: An internal httpx.AsyncClient for fetching the token.
        _fetch_lock: Serializes token fetches.
    """

    def __init__(
        self, client_id: str | None, client_secret: str | None, token_url: str | None
    ):
        if not client_id or not client_secret or not token_url:
            raise ConfigurationError(
                "ClientCredentialsAuth requires 'client_id', 'client_secret', and 'token_url'."
            )
        self._client_id: str = client_id
        self._client_secret: str = client_secret
        self._token_url: str = token_url
        self._access_token: str | None = None
        self._token_client: httpx.AsyncClient | None = None
        self._fetch_lock = asyncio.Lock()

    def _get_token_client(self) -> httpx.AsyncClient:
        if self._token_client is None:
            self._token_client = httpx.AsyncClient(timeout=15.0)
        return self._token_client

    async def _fetch_access_token(self) -> str:
        """Fetches an OAuth2 access token, once.

        Returns:
            The access token.

        Raises:
            AuthError: If the token endpoint fails or returns no access token.
        """
        async with self._fetch_lock:
            # Another request may have fetched it while we waited
            if self._access_token:
                return self._access_token

            logger.info(f"Fetching new access token from {self._token_url}")
            client = self._get_token_client()
            try:
                response = await client.post(
                    url=self._token_url,
                    auth=httpx.BasicAuth(
                        username=self._client_id, password=self._client_secret
                    ),
                    data={"grant_type": "client_credentials"},
                )
                response.raise_for_status()
                access_token = response.json().get("access_token")
            except httpx.HTTPStatusError as e:
                logger.error(
                    f"HTTP error fetching token: {e.response.status_code} - {e.response.text}"
                )
                raise AuthError(
                    f"Failed to fetch access token: {e.response.status_code} - {e.response.text}",
                    response=e.response,
                    request=e.request,
                ) from e
            except (httpx.RequestError, ValueError, AttributeError) as e:
                logger.error(f"Error fetching token: {e}")
                raise AuthError(f"Failed to fetch access token: {e}") from e

            if not access_token:
                raise AuthError("Access token not found in token response.")
            # TODO: honour 'expires_in' and refetch the token once it expires
            logger.info("Successfully fetched new access token.")
            self._access_token = access_token
            return access_token

    async def __call__(self, request: "RequestAPI") -> None:
        logger.trace("Authenticating request using ClientCredentialsAuth.")
        token = self._access_token or await self._fetch_access_token()
        request.header("Authorization", f"Bearer {token}")

    async def aclose(self) -> None:
        """Closes the internal HTTP client used for token fetching."""
        if self._token_client is not None:
            await self._token_client.aclose()
            self._token_client = None
            logger.debug("ClientCredentialsAuth internal client closed.")
