# bookstore/config.py
"""
Runtime settings for the storefront service.

Values are read from ``BOOKSTORE_*`` environment variables. When no
commerce API key is configured the upstream catalogue is never called and
the local sample dataset is served instead, which keeps development and
tests fully offline.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

ENV_PREFIX = "BOOKSTORE_"

DEFAULT_COMMERCE_API_URL = "https://api.upstartcommerce.com/v1"
DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 100


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    environment: str = "development"
    commerce_api_url: str = DEFAULT_COMMERCE_API_URL
    commerce_api_key: str = ""
    commerce_timeout: float = 10.0
    session_secret: str = "dev-session-secret-change-me"
    log_level: str = "INFO"
    page_size: int = DEFAULT_PAGE_SIZE
    # Page size used when paging through the commerce API for candidates.
    upstream_fetch_limit: int = 200

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"production", "prod"}

    @property
    def upstream_enabled(self) -> bool:
        return bool(self.commerce_api_url and self.commerce_api_key)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        return cls(
            environment=env.get(ENV_PREFIX + "ENV", "development"),
            commerce_api_url=env.get(ENV_PREFIX + "COMMERCE_API_URL", DEFAULT_COMMERCE_API_URL),
            commerce_api_key=env.get(ENV_PREFIX + "COMMERCE_API_KEY", ""),
            commerce_timeout=_get_float(env, "COMMERCE_TIMEOUT", 10.0),
            session_secret=env.get(ENV_PREFIX + "SESSION_SECRET", "dev-session-secret-change-me"),
            log_level=env.get(ENV_PREFIX + "LOG_LEVEL", "INFO").upper(),
            page_size=max(1, min(MAX_PAGE_SIZE, _get_int(env, "PAGE_SIZE", DEFAULT_PAGE_SIZE))),
            upstream_fetch_limit=max(1, _get_int(env, "UPSTREAM_FETCH_LIMIT", 200)),
        )
