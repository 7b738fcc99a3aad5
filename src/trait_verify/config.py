# SPDX-License-Identifier: MPL-2.0
"""Runtime configuration.

Settings are read from ``TRAIT_VERIFY_*`` environment variables. Defaults
match a local development setup against the Base chain.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, ValidationError, field_validator

from trait_verify.core.exceptions import ConfigurationError

ENV_PREFIX = "TRAIT_VERIFY_"

DEFAULT_APP_URL = "http://localhost:3000"
DEFAULT_CHAIN_ID = 8453  # Base
DEFAULT_STATEMENT = "Claim airdrop with X Blue Checkmark"
DEFAULT_STATEMENT_TTL_HOURS = 6
DEFAULT_SIGNATURE_CACHE_TTL = 300  # 5 minutes
DEFAULT_AUTHORITY_URL = "https://verify.base.dev/v1"


def _split(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseModel):
    """Configuration for statement building, caching and the authority client."""

    app_url: str = DEFAULT_APP_URL
    chain_id: int = Field(DEFAULT_CHAIN_ID, gt=0)
    statement: str = DEFAULT_STATEMENT
    statement_ttl_hours: float = Field(DEFAULT_STATEMENT_TTL_HOURS, gt=0)
    signature_cache_ttl_seconds: float = Field(DEFAULT_SIGNATURE_CACHE_TTL, gt=0)
    authority_url: str = DEFAULT_AUTHORITY_URL
    publisher_key: Optional[str] = None
    authority_timeout: float = Field(30, gt=0)
    allowed_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:8000"]
    )
    trusted_hosts: List[str] = Field(
        default_factory=lambda: ["localhost", "127.0.0.1", "testserver"]
    )
    log_level: str = "INFO"

    @field_validator("app_url", "authority_url")
    @classmethod
    def _require_http_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ValueError(f"not an http(s) URL: {value!r}")
        return value.rstrip("/")

    @field_validator("statement")
    @classmethod
    def _single_line(cls, value: str) -> str:
        if "\n" in value:
            raise ValueError("statement must be a single line")
        return value

    @field_validator("log_level")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.upper()

    @property
    def domain(self) -> str:
        """Host name of the application URL, used as the statement domain."""
        return urlparse(self.app_url).hostname or "localhost"

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "Settings":
        """Build settings from ``TRAIT_VERIFY_*`` environment variables.

        Raises:
            ConfigurationError: if a variable holds an invalid value.
        """
        env = os.environ if environ is None else environ
        mapping = {
            "app_url": "APP_URL",
            "chain_id": "CHAIN_ID",
            "statement": "STATEMENT",
            "statement_ttl_hours": "STATEMENT_TTL_HOURS",
            "signature_cache_ttl_seconds": "SIGNATURE_CACHE_TTL",
            "authority_url": "AUTHORITY_URL",
            "publisher_key": "PUBLISHER_KEY",
            "authority_timeout": "AUTHORITY_TIMEOUT",
            "log_level": "LOG_LEVEL",
        }
        values = {
            field_name: env[ENV_PREFIX + suffix]
            for field_name, suffix in mapping.items()
            if env.get(ENV_PREFIX + suffix)
        }
        for field_name, suffix in (("allowed_origins", "ALLOWED_ORIGINS"), ("trusted_hosts", "TRUSTED_HOSTS")):
            raw = env.get(ENV_PREFIX + suffix)
            if raw:
                values[field_name] = _split(raw)

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}", {"errors": e.errors()}) from e


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process settings, loaded once from the environment."""
    return Settings.from_env()
