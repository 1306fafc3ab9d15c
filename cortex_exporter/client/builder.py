"""HTTP client construction: timeout, TLS, proxy and authentication.

The transport settings mirror a stock keep-alive client; only the proxy,
trust roots and client certificate change with configuration.
"""

import ssl

import certifi
import httpx

from cortex_exporter.auth.headers import RemoteWriteAuth
from cortex_exporter.config.settings import Config, TLSConfig
from cortex_exporter.errors import FailedToReadFileError, InvalidProxyURLError, TLSConfigError

DIAL_TIMEOUT = 30.0  # seconds to establish a connection (incl. TLS handshake)
KEEPALIVE_EXPIRY = 90.0  # idle connections are closed after this many seconds
MAX_IDLE_CONNECTIONS = 100


def parse_proxy_url(proxy_url: str) -> httpx.Proxy:
    """Parse a proxy URL, assuming http:// when no scheme is given."""
    url = proxy_url if "://" in proxy_url else f"http://{proxy_url}"
    try:
        return httpx.Proxy(url)
    except (ValueError, httpx.InvalidURL) as e:
        raise InvalidProxyURLError(proxy_url, str(e)) from e


def build_transport(proxy_url: str = "", verify: ssl.SSLContext | bool = True) -> httpx.HTTPTransport:
    return httpx.HTTPTransport(
        verify=verify,
        proxy=parse_proxy_url(proxy_url) if proxy_url else None,
        limits=httpx.Limits(
            max_keepalive_connections=MAX_IDLE_CONNECTIONS,
            keepalive_expiry=KEEPALIVE_EXPIRY,
        ),
    )


def build_tls_context(tls: TLSConfig | None) -> ssl.SSLContext:
    """Build the client-side SSL context.

    A configured CA file replaces the default trust roots rather than
    extending them. insecure_skip_verify turns off both hostname and
    certificate checks.
    """
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    if tls is None or not tls.ca_file:
        ctx.load_verify_locations(cafile=certifi.where())
    else:
        _check_readable(tls.ca_file)
        try:
            ctx.load_verify_locations(cafile=tls.ca_file)
        except ssl.SSLError as e:
            raise TLSConfigError(f"Invalid CA certificate in '{tls.ca_file}': {e}") from e
    if tls is None:
        return ctx

    if bool(tls.cert_file) != bool(tls.key_file):
        raise TLSConfigError("Client certificate requires both cert_file and key_file")
    if tls.cert_file:
        _check_readable(tls.cert_file)
        _check_readable(tls.key_file)
        try:
            ctx.load_cert_chain(certfile=tls.cert_file, keyfile=tls.key_file)
        except ssl.SSLError as e:
            raise TLSConfigError(f"Invalid client certificate or key: {e}") from e

    if tls.insecure_skip_verify:
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
    return ctx


def _check_readable(path: str) -> None:
    try:
        with open(path, "rb"):
            pass
    except OSError as e:
        raise FailedToReadFileError(path) from e


def _server_name_hook(server_name: str):
    def hook(request: httpx.Request) -> None:
        request.extensions["sni_hostname"] = server_name
    return hook


def build_client(config: Config) -> httpx.Client:
    """Create the authenticated client used for remote-write requests.

    The client times out after config.remote_timeout seconds (no limit
    when unset), verifies TLS per config.tls_config, routes through
    config.proxy_url if given, and attaches RemoteWriteAuth so every
    request carries the protocol and Authorization headers.
    """
    event_hooks = {}
    if config.tls_config and config.tls_config.server_name:
        event_hooks["request"] = [_server_name_hook(config.tls_config.server_name)]

    return httpx.Client(
        transport=build_transport(config.proxy_url, verify=build_tls_context(config.tls_config)),
        timeout=config.remote_timeout or None,
        auth=RemoteWriteAuth(config),
        event_hooks=event_hooks,
    )
