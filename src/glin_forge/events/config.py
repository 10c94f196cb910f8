"""
Bridge connection configuration.

The glin-forge bridge listens on a random local port chosen by
`glin-forge run`, which exports it to child processes as
GLIN_FORGE_RPC_PORT. Only BridgeConfig.from_env() reads the environment;
clients and watchers receive the resulting values explicitly.

Environment Variables:
    GLIN_FORGE_RPC_PORT        Bridge port (required)
    GLIN_FORGE_RPC_HOST        Bridge host (default: 127.0.0.1)
    GLIN_FORGE_RPC_TIMEOUT     Per-request timeout in seconds (default: 300)
    GLIN_FORGE_POLL_INTERVAL   Delay between follow-mode polls (default: 1.0)
    GLIN_FORGE_RETRY_DELAY     Delay after a failed follow-mode poll (default: 5.0)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .client import BridgeNotRunningError

PORT_ENV_VAR = "GLIN_FORGE_RPC_PORT"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_REQUEST_TIMEOUT = 300.0  # follow-mode calls may legitimately take time
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_RETRY_DELAY = 5.0
DEFAULT_FOLLOW_LIMIT = 10


@dataclass
class BridgeConfig:
    """Configuration for talking to the glin-forge bridge."""

    port: Optional[int] = None
    host: str = DEFAULT_HOST
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    # Follow-mode polling
    poll_interval: float = DEFAULT_POLL_INTERVAL
    retry_delay: float = DEFAULT_RETRY_DELAY
    follow_limit: int = DEFAULT_FOLLOW_LIMIT

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BridgeConfig":
        """
        Load configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Raises:
            BridgeNotRunningError: If GLIN_FORGE_RPC_PORT is not set
            ValueError: If a timing variable is not a number
        """
        env = os.environ if environ is None else environ

        port = env.get(PORT_ENV_VAR, "").strip()
        if not port:
            raise BridgeNotRunningError(
                "glin-forge RPC server not running. "
                'This SDK must be used with "glin-forge run" command.'
            )

        try:
            port_number = int(port)
        except ValueError:
            raise BridgeNotRunningError(
                f"{PORT_ENV_VAR} is not a valid port number: {port!r}"
            ) from None

        return cls(
            port=port_number,
            host=env.get("GLIN_FORGE_RPC_HOST", DEFAULT_HOST),
            request_timeout=_env_float(env, "GLIN_FORGE_RPC_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
            poll_interval=_env_float(env, "GLIN_FORGE_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
            retry_delay=_env_float(env, "GLIN_FORGE_RETRY_DELAY", DEFAULT_RETRY_DELAY),
        )


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    value = env.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got {value!r}") from None
