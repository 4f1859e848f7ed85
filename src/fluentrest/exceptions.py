"""Custom exception classes for the fluentrest library."""

import httpx


class FluentRestError(Exception):
    """Base exception class for all fluentrest errors."""

    def __init__(
        self,
        message: str,
        *,
        response: httpx.Response | None = None,
        request: httpx.Request | None = None,
    ):
        """Initializes the base exception.

        Args:
            message: The error message.
            response: Optional httpx.Response object associated with the error.
            request: Optional httpx.Request object associated with the error.
        """
        super().__init__(message)
        self.message = message
        self.response = response
        self.request = request

    def __str__(self) -> str:
        if self.response is not None:
            url_info = self.request.url if self.request is not None else "N/A"
            return (
                f"{self.message} (Status: {self.response.status_code}, URL: {url_info})"
            )
        if isinstance(self.request, httpx.Request):
            return f"{self.message} (URL: {self.request.url})"
        return self.message


class RestError(FluentRestError):
    """Raised by ``send`` when the server answers outside the 2xx range.

    Attributes:
        code: The HTTP status code of the response.
        message: The best-effort error message taken from the response body.
    """

    def __init__(
        self,
        code: int,
        message: str,
        *,
        response: httpx.Response | None = None,
        request: httpx.Request | None = None,
    ):
        super().__init__(message, response=response, request=request)
        self.code = code

    def __repr__(self) -> str:
        return f"RestError(code={self.code}, message={self.message!r})"


class ConfigurationError(FluentRestError):
    """Represents an error in the client's configuration."""

    def __init__(self, message: str):
        super().__init__(message, response=None)


class AuthError(FluentRestError):
    """Raised when an authentication hook fails, e.g., fetching a token fails."""
