"""
Gateway settings and configuration constants.

This module centralizes all configurable parameters for the gateway,
making it easy to adjust behavior without modifying core logic.
"""

import os
from dataclasses import dataclass, fields
from enum import Enum


class CacheTier(str, Enum):
    """Expiry class of an endpoint's cached results."""

    LONG = "long"          # footprints, landmarks, assessments
    MEDIUM = "medium"      # violations, permits, emissions
    SHORT = "short"        # complaints
    VOLATILE = "volatile"  # collection schedules


@dataclass
class GatewaySettings:
    """Configuration settings for the open-data gateway."""

    # API Configuration
    api_host: str = "https://data.cityofnewyork.us"
    token_env_var: str = "OPENDATA_APP_TOKEN"

    # Concurrency settings
    max_concurrent: int = 10

    # Timeout and retry settings
    request_timeout: int = 15
    max_attempts: int = 3
    retry_delay: float = 0.5  # Fixed delay between transient-failure retries

    # Rate limiting: the portal allows roughly 1000 calls/hour per token
    min_interval: float = 3.6
    max_interval: float = 60.0

    # Cache TTLs (seconds) per tier
    ttl_long: int = 24 * 3600
    ttl_medium: int = 2 * 3600
    ttl_short: int = 3600
    ttl_volatile: int = 30 * 60

    # Batch settings
    batch_row_limit: int = 50000

    def ttl_for(self, tier: CacheTier) -> int:
        """Get the TTL in seconds for a cache tier."""
        return {
            CacheTier.LONG: self.ttl_long,
            CacheTier.MEDIUM: self.ttl_medium,
            CacheTier.SHORT: self.ttl_short,
            CacheTier.VOLATILE: self.ttl_volatile,
        }[tier]

    @classmethod
    def from_env(cls, environ=None) -> "GatewaySettings":
        """
        Build settings from OPENDATA_* environment variables.

        Every field can be overridden by the upper-cased field name with an
        OPENDATA_ prefix, e.g. OPENDATA_MIN_INTERVAL=1.5.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            GatewaySettings with overrides applied
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            raw = environ.get(f"OPENDATA_{f.name.upper()}")
            if raw is None or raw == "":
                continue
            if f.type in (int, "int"):
                overrides[f.name] = int(raw)
            elif f.type in (float, "float"):
                overrides[f.name] = float(raw)
            else:
                overrides[f.name] = raw
        return cls(**overrides)


# Default settings instance
DEFAULT_SETTINGS = GatewaySettings()
