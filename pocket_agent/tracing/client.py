"""
Langfuse tracing client with graceful degradation.

Uses the Langfuse SDK v3 (OpenTelemetry-based) API. A process-wide client
is created at startup; when credentials are missing or the auth check
fails, tracing is disabled and every tracing call becomes a no-op. The
agent never fails because observability is unavailable.
"""

import logging
from typing import Any, Optional

from langfuse import Langfuse

from ..models.config import LangfuseConfig

logger = logging.getLogger(__name__)


class TracingClient:
    """Wrapper around the Langfuse client that may be disabled."""

    def __init__(
        self,
        public_key: str = "",
        secret_key: str = "",
        host: str = "",
        debug: bool = False,
    ):
        self._client: Optional[Langfuse] = None
        self._enabled = False
        self._error: Optional[str] = None

        if not public_key or not secret_key:
            self._error = "Langfuse credentials not configured"
            logger.debug("Tracing disabled: %s", self._error)
            return

        if host and not host.startswith(("http://", "https://")):
            logger.warning(
                "LANGFUSE_HOST '%s' may be malformed; expected http(s)://hostname:port",
                host,
            )

        try:
            kwargs: dict[str, Any] = {
                "public_key": public_key,
                "secret_key": secret_key,
                "debug": debug,
            }
            if host:
                kwargs["host"] = host
            self._client = Langfuse(**kwargs)
        except Exception as e:
            self._error = f"Failed to initialize Langfuse client: {e}"
            logger.warning("Tracing disabled: %s", self._error)
            return

        if self._check_auth():
            self._enabled = True
            logger.info("Langfuse tracing enabled (host: %s)", host or "default")

    @classmethod
    def from_config(cls, langfuse: LangfuseConfig) -> "TracingClient":
        return cls(
            public_key=langfuse.public_key,
            secret_key=langfuse.secret_key,
            host=langfuse.host,
            debug=langfuse.debug,
        )

    def _check_auth(self) -> bool:
        """Verify endpoint and credentials once, at startup."""
        if self._client is None:
            return False
        try:
            ok = self._client.auth_check()
        except Exception as e:
            ok = False
            self._error = f"Langfuse connectivity check failed: {e}"
        else:
            if not ok:
                self._error = "Langfuse auth_check() failed; check host and credentials"
        if not ok:
            logger.warning("Tracing disabled: %s", self._error)
            self._client = None
        return ok

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def error(self) -> Optional[str]:
        """Why tracing is disabled, if it is."""
        return self._error

    @property
    def client(self) -> Optional[Langfuse]:
        return self._client

    def flush(self) -> None:
        if not self._enabled or self._client is None:
            return
        try:
            self._client.flush()
        except Exception as e:
            logger.warning("Failed to flush tracing events: %s", e)

    def shutdown(self) -> None:
        if not self._enabled or self._client is None:
            return
        try:
            self._client.shutdown()
            logger.info("Langfuse tracing client shutdown complete")
        except Exception as e:
            logger.warning("Error during tracing client shutdown: %s", e)


_tracing_client: Optional[TracingClient] = None


def init_tracing_client(langfuse: Optional[LangfuseConfig] = None) -> TracingClient:
    """Create the process-wide tracing client."""
    global _tracing_client
    _tracing_client = TracingClient.from_config(langfuse or LangfuseConfig())
    return _tracing_client


def get_tracing_client() -> Optional[TracingClient]:
    return _tracing_client


def shutdown_tracing() -> None:
    global _tracing_client
    if _tracing_client:
        _tracing_client.shutdown()
        _tracing_client = None
