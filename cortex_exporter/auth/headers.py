"""Request decoration for remote-write requests.

Sets the protocol headers, any static headers from the config and at most
one Authorization header. A static Authorization header wins over
bearer/basic settings; a bearer token wins over basic auth.

Credential files are read each time headers are built, so a rotated
token file is picked up on the next request.
"""

import base64
from collections.abc import Generator

import httpx

from cortex_exporter.config.settings import Config
from cortex_exporter.errors import (
    FailedToReadFileError,
    NoBasicAuthPasswordError,
    NoBasicAuthUsernameError,
)
from cortex_exporter.logging.audit import get_logger

REMOTE_WRITE_HEADERS = {
    "X-Prometheus-Remote-Write-Version": "0.1.0",
    "Content-Encoding": "snappy",
    "Content-Type": "application/x-protobuf",
}


def add_headers(request: httpx.Request, config: Config) -> None:
    for name, value in REMOTE_WRITE_HEADERS.items():
        request.headers[name] = value

    for name, value in config.headers.items():
        request.headers[name] = value

    if config.has_authorization_header:
        return

    add_bearer_token_auth(request, config)
    add_basic_auth(request, config)


def add_bearer_token_auth(request: httpx.Request, config: Config) -> None:
    """Set `Authorization: Bearer <token>` from the literal token or token file."""
    if "Authorization" in request.headers:
        return

    token = config.bearer_token
    if config.bearer_token_file:
        token = read_credential_file(config.bearer_token_file)
    if not token:
        # An empty token file counts as no bearer token
        return

    request.headers["Authorization"] = f"Bearer {token}"


def add_basic_auth(request: httpx.Request, config: Config) -> None:
    """Set `Authorization: Basic ...` when basic_auth is configured.

    Skipped if the request already carries an Authorization header.

    Raises:
        NoBasicAuthUsernameError: username is empty.
        NoBasicAuthPasswordError: neither password nor password_file is set.
        FailedToReadFileError: password_file cannot be read.
    """
    if config.basic_auth is None or "Authorization" in request.headers:
        return

    username = config.basic_auth.username
    if not username:
        raise NoBasicAuthUsernameError()

    password = config.basic_auth.password
    if config.basic_auth.password_file:
        password = read_credential_file(config.basic_auth.password_file)
    elif not password:
        raise NoBasicAuthPasswordError()

    encoded = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
    request.headers["Authorization"] = f"Basic {encoded}"


def read_credential_file(path: str) -> str:
    """Read a password/token file, stripping surrounding whitespace."""
    try:
        with open(path, encoding="utf-8") as f:
            return f.read().strip()
    except (OSError, UnicodeDecodeError) as e:
        get_logger().warning(
            "Credential file unreadable",
            extra={"audit_data": {"path": path, "error": type(e).__name__}},
        )
        raise FailedToReadFileError(path) from e


class RemoteWriteAuth(httpx.Auth):
    """httpx auth hook that runs add_headers on every outgoing request."""

    def __init__(self, config: Config):
        self._config = config

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        add_headers(request, self._config)
        yield request
