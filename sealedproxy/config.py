"""Process-wide settings, read once from the environment at startup."""

from __future__ import annotations

import logging
import os
import secrets
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"

DEFAULT_FETCH_TIMEOUT = 2.0
DEFAULT_MAX_BYTES = 5_000_000


@dataclass(frozen=True)
class ProxySettings:
    secret: str = field(repr=False)
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    user_agent: str = USER_AGENT
    max_bytes: int = DEFAULT_MAX_BYTES
    host: str = "0.0.0.0"
    port: int = 8080

    @classmethod
    def from_env(cls) -> "ProxySettings":
        secret = os.environ.get("SEALEDPROXY_SECRET", "")
        if not secret:
            # Links signed with a per-process key stop verifying after a restart.
            logger.warning("SEALEDPROXY_SECRET is not set; using a random per-process key")
            secret = secrets.token_hex(32)
        return cls(
            secret=secret,
            fetch_timeout=float(os.environ.get("SEALEDPROXY_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT)),
            user_agent=os.environ.get("SEALEDPROXY_USER_AGENT", USER_AGENT),
            max_bytes=int(os.environ.get("SEALEDPROXY_MAX_BYTES", DEFAULT_MAX_BYTES)),
            host=os.environ.get("SEALEDPROXY_HOST", "0.0.0.0"),
            port=int(os.environ.get("SEALEDPROXY_PORT", "8080")),
        )
