"""fluentrest: a small fluent client for JSON REST APIs.

Requests are built incrementally with chainable calls and resolved with
``await request.send()`` to the parsed JSON payload, or a ``RestError`` for
non-2xx responses. Hooks registered on the client run, in order, right before
every request is dispatched.
"""

__version__ = "0.1.0"

from . import auth, client, config, encoding, exceptions, log_config, request, types
from .auth import ClientCredentialsAuth, StaticTokenAuth
from .client import RestAPI, create_rest_api
from .exceptions import AuthError, ConfigurationError, FluentRestError, RestError
from .log_config import configure_logging
from .request import RequestAPI
from .types import Blob, FormData

__all__ = [
    "__version__",
    "auth",
    "client",
    "config",
    "encoding",
    "exceptions",
    "log_config",
    "request",
    "types",
    "AuthError",
    "Blob",
    "ClientCredentialsAuth",
    "ConfigurationError",
    "FluentRestError",
    "FormData",
    "RequestAPI",
    "RestAPI",
    "RestError",
    "StaticTokenAuth",
    "configure_logging",
    "create_rest_api",
]
