"""Configuration validation and defaulting.

Run once at startup, before the client is built.
"""

import httpx

from cortex_exporter.client.builder import DIAL_TIMEOUT, build_transport
from cortex_exporter.config.settings import Config
from cortex_exporter.errors import TwoBearerTokensError, TwoPasswordsError

DEFAULT_ENDPOINT = "/api/prom/push"
DEFAULT_REMOTE_TIMEOUT = 30.0  # seconds
DEFAULT_PUSH_INTERVAL = 10.0  # seconds between pushes of the external push loop


def validate_config(config: Config) -> Config:
    """Reject contradictory settings and fill in defaults, in place.

    Raises:
        TwoBearerTokensError: bearer_token and bearer_token_file are both set.
        TwoPasswordsError: basic_auth has both password and password_file.
        InvalidProxyURLError: proxy_url cannot be parsed.

    Returns the same config object for chaining.
    """
    # Mutually exclusive credential sources
    if config.bearer_token and config.bearer_token_file:
        raise TwoBearerTokensError()
    if config.basic_auth and config.basic_auth.password and config.basic_auth.password_file:
        raise TwoPasswordsError()

    # Defaults (zero counts as unset)
    if not config.endpoint:
        config.endpoint = DEFAULT_ENDPOINT
    if not config.remote_timeout:
        config.remote_timeout = DEFAULT_REMOTE_TIMEOUT
    if not config.push_interval:
        config.push_interval = DEFAULT_PUSH_INTERVAL

    if config.client is None:
        # Keep-alive defaults with no overall timeout; proxied if configured
        config.client = httpx.Client(
            transport=build_transport(config.proxy_url),
            timeout=httpx.Timeout(None, connect=DIAL_TIMEOUT),
        )
    return config
