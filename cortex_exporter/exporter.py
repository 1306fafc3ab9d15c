"""Remote-write exporter: one authenticated POST per export cycle.

Encoding the payload and scheduling pushes are the caller's job; the
exporter takes already-encoded bytes and delivers them.
"""

import httpx

from cortex_exporter.auth.headers import RemoteWriteAuth
from cortex_exporter.client.builder import build_client
from cortex_exporter.config.settings import Config, get_config
from cortex_exporter.config.validation import validate_config
from cortex_exporter.errors import RemoteWriteError
from cortex_exporter.logging.audit import (
    RequestTimer,
    export_id_var,
    generate_export_id,
    get_logger,
    setup_logging,
)


class Exporter:
    """Sends remote-write payloads to config.endpoint.

    A client preset on the config is used as-is (its transport, TLS and
    proxy settings are the caller's); otherwise the exporter builds and
    owns one via build_client. An owned client is never stored on the
    config, so the same config can back several exporters in turn.
    """

    def __init__(self, config: Config):
        preset = config.client is not None
        validate_config(config)

        if preset:
            client = config.client
        else:
            # The placeholder from validation is replaced by the full client
            placeholder, config.client = config.client, None
            placeholder.close()
            client = build_client(config)

        self._config = config
        self._client: httpx.Client = client
        self._owns_client = not preset
        self._auth = RemoteWriteAuth(config)

    @property
    def config(self) -> Config:
        return self._config

    @classmethod
    def from_env(cls) -> "Exporter":
        """Build an exporter from CORTEX_* environment settings and set up logging."""
        config = get_config().model_copy()
        setup_logging(config)
        get_logger().info(
            "Exporter configured",
            extra={"audit_data": {"exporter": config.name, "endpoint": config.endpoint}},
        )
        return cls(config)

    @property
    def client(self) -> httpx.Client:
        return self._client

    def __enter__(self) -> "Exporter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def send(self, payload: bytes) -> httpx.Response:
        """POST an encoded payload and return the upstream response.

        Raises:
            AuthError: credentials could not be loaded.
            RemoteWriteError: the endpoint answered with a non-2xx status.
            httpx.HTTPError: the request failed in transport.
        """
        logger = get_logger()
        token = export_id_var.set(generate_export_id())
        audit = {
            "exporter": self._config.name,
            "endpoint": self._config.endpoint,
            "payload_bytes": len(payload),
        }
        try:
            with RequestTimer() as timer:
                try:
                    response = self._client.post(
                        self._config.endpoint, content=payload, auth=self._auth
                    )
                except httpx.HTTPError as e:
                    logger.error(
                        "Remote write transport error",
                        extra={"audit_data": {**audit, "error": str(e)}},
                    )
                    raise

            audit.update(status=response.status_code, latency_ms=timer.elapsed_ms)
            if not response.is_success:
                logger.warning("Remote write rejected", extra={"audit_data": audit})
                raise RemoteWriteError(response.status_code, response.text)

            logger.info("Remote write sent", extra={"audit_data": audit})
            return response
        finally:
            export_id_var.reset(token)

    def close(self) -> None:
        if self._owns_client and not self._client.is_closed:
            self._client.close()
