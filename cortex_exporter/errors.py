"""Exception types raised by the exporter.

Configuration problems surface from validate_config / build_client,
credential problems from header construction, and upstream rejections
from Exporter.send. Nothing here is retried.
"""


class ExporterError(Exception):
    """Base class for all exporter errors."""


class ConfigError(ExporterError):
    """The configuration is contradictory or unusable."""


class TwoPasswordsError(ConfigError):
    def __init__(self):
        super().__init__("Cannot have two passwords in the configuration")


class TwoBearerTokensError(ConfigError):
    def __init__(self):
        super().__init__("Cannot have two bearer tokens in the configuration")


class InvalidProxyURLError(ConfigError):
    def __init__(self, proxy_url: str, reason: str = ""):
        self.proxy_url = proxy_url
        detail = f": {reason}" if reason else ""
        super().__init__(f"Invalid proxy URL '{proxy_url}'{detail}")


class TLSConfigError(ConfigError):
    """TLS settings are incomplete (e.g. a cert without its key)."""


class AuthError(ExporterError):
    """Authorization headers could not be built."""


class NoBasicAuthUsernameError(AuthError):
    def __init__(self):
        super().__init__("No username provided for basic authentication")


class NoBasicAuthPasswordError(AuthError):
    def __init__(self):
        super().__init__("No password or password file provided for basic authentication")


class FailedToReadFileError(AuthError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Failed to read file '{path}'")


class RemoteWriteError(ExporterError):
    """The remote endpoint answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Remote write failed with status {status_code}: {body}")
