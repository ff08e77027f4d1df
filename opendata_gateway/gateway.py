"""
Compliance gateway.

Single entry point owning the HTTP session, cache, rate limiter and fetch
pipeline. Construct one per process (or per test) and use it as an async
context manager:

    async with ComplianceGateway() as gateway:
        records = await gateway.fetch(Endpoint.violations_by_bin("1034304"))
"""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import aiohttp

from opendata_gateway.config import GatewaySettings, DEFAULT_SETTINGS
from opendata_gateway.errors import GatewayError
from opendata_gateway.fetchers.base import BaseFetcher, TokenProvider
from opendata_gateway.fetchers.batch import BatchAggregator
from opendata_gateway.fetchers.endpoints import Endpoint
from opendata_gateway.fetchers.engine import EndpointStatus, FetchEngine, FetchListener
from opendata_gateway.fetchers.fallback import FallbackSelector
from opendata_gateway.fetchers.rate_limiter import RateLimiter
from opendata_gateway.models.compliance import BuildingCompliance
from opendata_gateway.storage.cache import TieredCache
from opendata_gateway.storage.snapshot import CacheSnapshot
from opendata_gateway.utils import normalize

logger = logging.getLogger(__name__)


class ComplianceGateway:
    """
    Facade over the fetch engine, batch aggregator and fallback selector.

    The session may be injected; otherwise one is created on __aenter__ and
    closed on __aexit__.
    """

    def __init__(
        self,
        settings: Optional[GatewaySettings] = None,
        session: Optional[aiohttp.ClientSession] = None,
        cache: Optional[TieredCache] = None,
        limiter: Optional[RateLimiter] = None,
        token_provider: Optional[TokenProvider] = None,
        sleep=asyncio.sleep,
    ):
        """
        Initialize gateway.

        Args:
            settings: Gateway settings (defaults to DEFAULT_SETTINGS)
            session: Existing aiohttp session; the gateway will not close it
            cache: Result cache shared by every endpoint
            limiter: Rate limiter shared by every endpoint
            token_provider: Callable returning the application token
            sleep: Coroutine used for retry delays
        """
        self.settings = settings or DEFAULT_SETTINGS
        self.cache = cache if cache is not None else TieredCache()
        self.limiter = limiter or RateLimiter(self.settings.min_interval, self.settings.max_interval)
        self._token_provider = token_provider
        self._sleep = sleep
        self._owns_session = session is None
        self._session = session
        self._listeners: List[FetchListener] = []

        self.engine: Optional[FetchEngine] = None
        self.batch: Optional[BatchAggregator] = None
        self.fallback: Optional[FallbackSelector] = None
        if session is not None:
            self._build(session)

    def _build(self, session) -> None:
        self.engine = FetchEngine(
            session,
            cache=self.cache,
            limiter=self.limiter,
            settings=self.settings,
            token_provider=self._token_provider,
            sleep=self._sleep,
        )
        for listener in self._listeners:
            self.engine.subscribe(listener)
        self.batch = BatchAggregator(self.engine)
        self.fallback = FallbackSelector(self.engine)

    async def __aenter__(self) -> "ComplianceGateway":
        if self._session is None:
            self._session = BaseFetcher(self.settings, self._token_provider).create_session()
            self._build(self._session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP session if the gateway created it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
            self.engine = None
            self.batch = None
            self.fallback = None

    def _require_engine(self) -> FetchEngine:
        if self.engine is None:
            raise RuntimeError("ComplianceGateway is not open; use 'async with ComplianceGateway()'")
        return self.engine

    # Inbound interface

    async def fetch(self, endpoint: Endpoint) -> list:
        """Fetch decoded records for one endpoint."""
        return await self._require_engine().fetch(endpoint)

    async def fetch_grouped(
        self,
        family,
        identifiers: Sequence[str],
        months: Optional[int] = None,
    ) -> Dict[str, list]:
        """Fetch a record family for many buildings in one request."""
        self._require_engine()
        return await self.batch.fetch_grouped(family, identifiers, months=months)

    @staticmethod
    def normalize_property_key(raw) -> str:
        return normalize.normalize_property_key(raw)

    @staticmethod
    def normalize_address(raw) -> str:
        return normalize.normalize_address(raw)

    # Fallback lookups

    async def violations(self, bin_number: str = "", address: str = "", name: str = "") -> list:
        self._require_engine()
        return await self.fallback.violations(bin_number, address, name)

    async def permits(self, bin_number: str = "", address: str = "", name: str = "") -> list:
        self._require_engine()
        return await self.fallback.permits(bin_number, address, name)

    async def complaints(self, bin_number: str = "", address: str = "", name: str = "") -> list:
        self._require_engine()
        return await self.fallback.complaints(bin_number, address, name)

    async def sanitation_violations(
        self,
        bin_number: str = "",
        bbl: str = "",
        address: str = "",
        name: str = "",
    ) -> list:
        self._require_engine()
        return await self.fallback.sanitation_violations(bin_number, bbl, address, name)

    # Bundles

    async def fetch_building_compliance(
        self,
        bin_number: str,
        bbl: str = "",
        address: str = "",
        name: str = "",
    ) -> BuildingCompliance:
        """
        Fetch every compliance category for one building concurrently.

        A category that fails is left empty and its error recorded in
        BuildingCompliance.errors; the other categories are still returned.

        Args:
            bin_number: Building identification number
            bbl: Property key (borough/block/lot)
            address: Street address used by the fallbacks
            name: Building name used by the fallbacks

        Returns:
            BuildingCompliance bundle
        """
        engine = self._require_engine()
        bin_number = normalize.normalize_bin(bin_number)
        property_key = normalize.normalize_property_key(bbl) if bbl else ""

        async def nothing() -> list:
            return []

        tasks = {
            "housing_violations": self.fallback.violations(bin_number, address, name),
            "permits": self.fallback.permits(bin_number, address, name),
            "fire_inspections": (
                engine.fetch(Endpoint.inspections_by_bin(bin_number)) if bin_number else nothing()
            ),
            "emissions": (
                engine.fetch(Endpoint.emissions_by_bbl(property_key))
                if normalize.is_valid_property_key(property_key) else nothing()
            ),
            "complaints": self.fallback.complaints(bin_number, address, name),
            "sanitation_violations": self.fallback.sanitation_violations(
                bin_number, property_key, address, name
            ),
        }
        results = await asyncio.gather(*tasks.values(), return_exceptions=True)

        bundle = BuildingCompliance(bin=bin_number, bbl=property_key, address=address or None)
        for category, result in zip(tasks, results):
            if isinstance(result, GatewayError):
                logger.warning(f"{category} unavailable for BIN {bin_number}: {result}")
                bundle.errors[category] = str(result)
            elif isinstance(result, BaseException):
                raise result
            else:
                setattr(bundle, category, result)

        bundle.fetched_at = datetime.now().isoformat()
        return bundle

    async def resolve_identifiers(
        self,
        latitude: float,
        longitude: float,
        radius_meters: int = 25,
    ) -> Optional[Dict[str, str]]:
        """
        Find the building at a coordinate.

        Returns:
            {"bin": ..., "bbl": ...} for the nearest footprint within the
            radius, or None when there is none
        """
        footprints = await self.fetch(Endpoint.footprint_by_location(latitude, longitude, radius_meters))
        if not footprints:
            logger.info(f"No footprint within {radius_meters}m of {latitude},{longitude}")
            return None
        footprint = footprints[0]
        return {
            "bin": normalize.normalize_bin(footprint.bin),
            "bbl": normalize.normalize_property_key(footprint.bbl) if footprint.bbl else "",
        }

    # Observation

    def subscribe(self, listener: FetchListener) -> None:
        """Register a callback run with (endpoint, records) after each network fetch."""
        self._listeners.append(listener)
        if self.engine is not None:
            self.engine.subscribe(listener)

    @property
    def status(self) -> Dict[str, EndpointStatus]:
        return dict(self.engine.status) if self.engine is not None else {}

    @property
    def last_sync(self) -> Optional[datetime]:
        return self.engine.last_sync if self.engine is not None else None

    # Cache persistence

    def save_cache(self, path: Path) -> int:
        """Write live cache entries to a JSON snapshot. Returns entries written."""
        return CacheSnapshot(path).save(self.cache)

    def load_cache(self, path: Path) -> int:
        """Load unexpired entries from a JSON snapshot. Returns entries loaded."""
        return CacheSnapshot(path).load(self.cache)

    def stats(self) -> Dict[str, Any]:
        return {
            "cached_entries": len(self.cache),
            "rate_limit_interval": self.limiter.current_interval,
            "last_sync": self.last_sync.isoformat() if self.last_sync else None,
        }
