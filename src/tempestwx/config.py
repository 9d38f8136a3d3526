"""
Client configuration for tempestwx.
"""

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BASE_URL = "https://swd.weatherflow.com/swd/rest"
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class ClientConfig:
    """Settings shared by every request a client makes.

    The API key is the personal use token generated at
    https://tempestwx.com/settings/tokens.
    """

    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = "tempestwx-client/0.1.0"

    @classmethod
    def from_env(cls, api_key: Optional[str] = None) -> "ClientConfig":
        """Build a config from ``TEMPEST_*`` environment variables.

        An explicit ``api_key`` wins over ``TEMPEST_API_KEY``.
        """
        return cls(
            api_key=api_key if api_key is not None else os.environ.get("TEMPEST_API_KEY", ""),
            base_url=os.environ.get("TEMPEST_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            timeout=float(os.environ.get("TEMPEST_TIMEOUT", str(DEFAULT_TIMEOUT))),
        )
