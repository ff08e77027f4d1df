"""
Base fetcher utilities for async HTTP operations.

Provides common headers, session creation and credential lookup.
"""

import os
from typing import Callable, Dict, Optional

import aiohttp

from opendata_gateway.config import GatewaySettings, DEFAULT_SETTINGS


USER_AGENT = "opendata-gateway/0.1 (+aiohttp)"

TokenProvider = Callable[[], Optional[str]]


def env_token_provider(var_name: str) -> TokenProvider:
    """
    Build a token provider reading an environment variable on each call.

    There is no built-in fallback token: without the variable, requests go
    out unauthenticated and get the portal's lower anonymous rate limit.
    """
    def provider() -> Optional[str]:
        token = os.environ.get(var_name, "").strip()
        return token or None
    return provider


class BaseFetcher:
    """Base class for async HTTP fetchers."""

    def __init__(
        self,
        settings: GatewaySettings = DEFAULT_SETTINGS,
        token_provider: Optional[TokenProvider] = None,
    ):
        """
        Initialize fetcher with gateway settings.

        Args:
            settings: Gateway settings
            token_provider: Callable returning the application token, or None
        """
        self.settings = settings
        self.token_provider = token_provider or env_token_provider(settings.token_env_var)
        self.timeout = aiohttp.ClientTimeout(total=settings.request_timeout)

    def get_headers(self) -> Dict[str, str]:
        """Get default HTTP headers."""
        headers = {
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        token = self.token_provider()
        if token:
            headers["X-App-Token"] = token
        return headers

    def create_connector(self) -> aiohttp.TCPConnector:
        """Create a TCP connector with appropriate limits."""
        return aiohttp.TCPConnector(limit=self.settings.max_concurrent)

    def create_session(self) -> aiohttp.ClientSession:
        """Create a client session using this fetcher's connector and timeout."""
        return aiohttp.ClientSession(connector=self.create_connector(), timeout=self.timeout)
