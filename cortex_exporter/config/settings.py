"""Exporter configuration loaded from keyword arguments or environment variables."""

from functools import lru_cache

import httpx
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class BasicAuth(BaseModel):
    username: str = ""
    password: str = ""
    password_file: str = ""  # path; mutually exclusive with password


class TLSConfig(BaseModel):
    ca_file: str = ""
    cert_file: str = ""  # client certificate for mutual TLS
    key_file: str = ""
    server_name: str = ""  # overrides SNI / verified hostname
    insecure_skip_verify: bool = False


class Config(BaseSettings):
    # Remote endpoint
    endpoint: str = ""  # empty = /api/prom/push
    remote_timeout: float | None = None  # seconds; None or 0 = 30s
    name: str = ""

    # Authentication
    basic_auth: BasicAuth | None = None
    bearer_token: str = ""
    bearer_token_file: str = ""

    # Transport
    tls_config: TLSConfig | None = None
    proxy_url: str = ""
    push_interval: float | None = None  # seconds; None or 0 = 10s
    headers: dict[str, str] = Field(default_factory=dict)
    client: httpx.Client | None = Field(default=None, exclude=True, repr=False)

    # Logging
    log_level: str = "INFO"
    log_file: str = ""  # Empty = stdout only

    model_config = {
        "env_prefix": "CORTEX_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "arbitrary_types_allowed": True,
    }

    @property
    def has_authorization_header(self) -> bool:
        """True when a static Authorization header overrides the auth settings."""
        return any(k.lower() == "authorization" for k in self.headers)


@lru_cache
def get_config() -> Config:
    return Config()
