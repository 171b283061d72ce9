"""Environment-based configuration for the Huly MCP server.

Variables:

    HULY_URL               Platform front URL (default: https://huly.app)
    HULY_WORKSPACE         Workspace identifier, e.g. "my-company" (required)
    HULY_TOKEN             Pre-issued workspace token
    HULY_EMAIL             Account email (with HULY_PASSWORD)
    HULY_PASSWORD          Account password (with HULY_EMAIL)
    HULY_CONNECT_TIMEOUT   Connection establishment timeout in seconds (default: 30)

Either HULY_TOKEN or both HULY_EMAIL and HULY_PASSWORD must be set.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConfigurationError

DEFAULT_URL = "https://huly.app"
DEFAULT_CONNECT_TIMEOUT = 30.0


@dataclass
class HulyConfig:
    """Resolved connection settings."""

    url: str
    workspace: str
    token: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT

    def has_credentials(self) -> bool:
        """True when a token or a full email+password pair is available."""
        return bool(self.token) or bool(self.email and self.password)

    def validate(self) -> None:
        """Raise ConfigurationError if the workspace or credentials are missing."""
        if not self.workspace:
            raise ConfigurationError(
                "HULY_WORKSPACE environment variable is required. "
                'Set it to your workspace identifier (e.g., "my-company").',
                suggestions=["Set: export HULY_WORKSPACE=my-company"],
            )
        if not self.has_credentials():
            raise ConfigurationError(
                "Either HULY_TOKEN or both HULY_EMAIL and HULY_PASSWORD must be set.",
                suggestions=[
                    "Set: export HULY_TOKEN=<workspace token>",
                    "Or: export HULY_EMAIL=you@example.com HULY_PASSWORD=...",
                ],
            )

    @classmethod
    def get_help_message(cls) -> str:
        """Get helpful message about configuration options."""
        return """Huly connection not configured.

Set the workspace and one form of credentials:

1. Token:
   $ export HULY_WORKSPACE=my-company
   $ export HULY_TOKEN=xxxxxxxx

2. Email and password:
   $ export HULY_WORKSPACE=my-company
   $ export HULY_EMAIL=you@example.com
   $ export HULY_PASSWORD=secret

Optionally point HULY_URL at a self-hosted instance (default: https://huly.app).
"""


def load_config(environ: Optional[Mapping[str, str]] = None) -> HulyConfig:
    """Load and validate configuration from the process environment."""
    env = os.environ if environ is None else environ

    token = env.get("HULY_TOKEN") or None
    timeout_raw = env.get("HULY_CONNECT_TIMEOUT")
    try:
        timeout = float(timeout_raw) if timeout_raw else DEFAULT_CONNECT_TIMEOUT
    except ValueError:
        raise ConfigurationError(
            f"HULY_CONNECT_TIMEOUT must be a number of seconds, got {timeout_raw!r}"
        )

    config = HulyConfig(
        url=(env.get("HULY_URL") or DEFAULT_URL).rstrip("/"),
        workspace=env.get("HULY_WORKSPACE", ""),
        token=token,
        # A token wins over email/password, matching how connect() authenticates
        email=None if token else (env.get("HULY_EMAIL") or None),
        password=None if token else (env.get("HULY_PASSWORD") or None),
        connect_timeout=timeout,
    )
    config.validate()
    return config
