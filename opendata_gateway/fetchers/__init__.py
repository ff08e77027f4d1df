"""Async fetchers for the open-data portal."""

from opendata_gateway.fetchers.base import BaseFetcher, env_token_provider
from opendata_gateway.fetchers.endpoints import (
    Endpoint,
    EndpointKind,
    ENDPOINT_SPECS,
    GROUPED_KINDS,
    to_url,
    to_cache_key,
    describe_endpoints,
)
from opendata_gateway.fetchers.rate_limiter import RateLimiter
from opendata_gateway.fetchers.engine import EndpointStatus, FetchEngine, FetchState
from opendata_gateway.fetchers.batch import BatchAggregator, GROUPED_FAMILIES
from opendata_gateway.fetchers.fallback import FallbackSelector

__all__ = [
    # Base
    "BaseFetcher",
    "env_token_provider",
    # Endpoints
    "Endpoint",
    "EndpointKind",
    "ENDPOINT_SPECS",
    "GROUPED_KINDS",
    "to_url",
    "to_cache_key",
    "describe_endpoints",
    # Request pipeline
    "RateLimiter",
    "EndpointStatus",
    "FetchEngine",
    "FetchState",
    # Strategies
    "BatchAggregator",
    "GROUPED_FAMILIES",
    "FallbackSelector",
]
