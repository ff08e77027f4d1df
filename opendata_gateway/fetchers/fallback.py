"""
Fallback strategies for building lookups.

Many buildings are missing from the identifier-keyed datasets, or carry a
different identifier there. The selector tries the identifier first, then
address variants, then secondary datasets; the first non-empty result is
returned as-is. Results from different strategies are never merged.
"""

import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from opendata_gateway.errors import GatewayError
from opendata_gateway.fetchers.endpoints import Endpoint
from opendata_gateway.models.records import SanitationViolation
from opendata_gateway.utils.normalize import (
    is_non_building_location,
    is_valid_property_key,
    normalize_address,
    normalize_bin,
    normalize_property_key,
)

logger = logging.getLogger(__name__)

Strategy = Tuple[str, Callable[[], Awaitable[list]]]

# 311 complaint types that stand in for missing sanitation violations
SANITATION_COMPLAINT_TERMS = (
    "sanitation",
    "dirty",
    "missed",
    "encampment",
    "illegal dumping",
)


def address_variants(address: str, name: str = "") -> List[str]:
    """
    Address strings to try, most specific first.

    "name, address" comes before the bare address. Variants that normalize
    to the same string are tried once.
    """
    candidates = []
    if name and address and name.lower() not in address.lower():
        candidates.append(f"{name}, {address}")
    if address:
        candidates.append(address)

    variants = []
    seen = set()
    for candidate in candidates:
        normalized = normalize_address(candidate)
        if normalized and normalized.lower() not in seen:
            seen.add(normalized.lower())
            variants.append(candidate)
    return variants


def is_sanitation_complaint(complaint) -> bool:
    complaint_type = (complaint.complaint_type or "").lower()
    return any(term in complaint_type for term in SANITATION_COMPLAINT_TERMS)


class FallbackSelector:
    """Runs ordered fetch strategies until one returns records."""

    def __init__(self, engine):
        """
        Initialize selector.

        Args:
            engine: FetchEngine used by every strategy
        """
        self.engine = engine

    async def first_non_empty(self, strategies: Sequence[Strategy]) -> list:
        """
        Run strategies in order and return the first non-empty result.

        A strategy that raises GatewayError counts as empty. If every
        strategy raised, the last error is re-raised.

        Args:
            strategies: (label, coroutine factory) pairs

        Returns:
            First non-empty result, or the last (empty) result
        """
        result: list = []
        last_error: Optional[GatewayError] = None
        succeeded = False

        for label, run in strategies:
            try:
                result = await run()
            except GatewayError as e:
                logger.warning(f"Strategy {label} failed: {e}")
                last_error = e
                continue
            succeeded = True
            if result:
                logger.debug(f"Strategy {label} returned {len(result)} records")
                return result
            logger.debug(f"Strategy {label} returned nothing")

        if not succeeded and last_error is not None:
            raise last_error
        return result

    async def select(self, primary: Endpoint, *fallbacks: Endpoint) -> list:
        """Fetch primary, then each fallback endpoint, until one has records."""
        return await self.first_non_empty(
            [(e.cache_key, self._fetcher(e)) for e in (primary,) + fallbacks]
        )

    def _fetcher(self, endpoint: Endpoint) -> Callable[[], Awaitable[list]]:
        async def run() -> list:
            return await self.engine.fetch(endpoint)
        return run

    def _lookup_strategies(
        self,
        by_bin: Callable[[str], Endpoint],
        by_address: Callable[[str], Endpoint],
        bin_number: str,
        address: str,
        name: str,
    ) -> List[Strategy]:
        strategies: List[Strategy] = []
        bin_number = normalize_bin(bin_number)
        if bin_number:
            endpoint = by_bin(bin_number)
            strategies.append((endpoint.cache_key, self._fetcher(endpoint)))
        if is_non_building_location(name, address):
            logger.debug(f"Skipping address lookups for non-building location: {name or address}")
            return strategies
        for variant in address_variants(address, name):
            endpoint = by_address(variant)
            strategies.append((endpoint.cache_key, self._fetcher(endpoint)))
        return strategies

    async def violations(self, bin_number: str = "", address: str = "", name: str = "") -> list:
        """Housing violations by BIN, falling back to address search."""
        return await self.first_non_empty(self._lookup_strategies(
            Endpoint.violations_by_bin, Endpoint.violations_by_address, bin_number, address, name
        ))

    async def permits(self, bin_number: str = "", address: str = "", name: str = "") -> list:
        """Building permits by BIN, falling back to address search."""
        return await self.first_non_empty(self._lookup_strategies(
            Endpoint.permits_by_bin, Endpoint.permits_by_address, bin_number, address, name
        ))

    async def complaints(self, bin_number: str = "", address: str = "", name: str = "") -> list:
        """Service complaints by BIN, falling back to the incident address."""
        return await self.first_non_empty(self._lookup_strategies(
            Endpoint.complaints_by_bin, Endpoint.complaints_by_address, bin_number, address, name
        ))

    async def sanitation_violations(
        self,
        bin_number: str = "",
        bbl: str = "",
        address: str = "",
        name: str = "",
    ) -> list:
        """
        Sanitation violations from the best available source.

        Order: hearings filed by the sanitation agency for the property key,
        the legacy violations dataset by BIN and then by address, and finally
        sanitation-related service complaints at the address.

        Returns:
            List of SanitationViolation
        """
        bin_number = normalize_bin(bin_number)
        strategies: List[Strategy] = []

        property_key = normalize_property_key(bbl) if bbl else ""
        if is_valid_property_key(property_key):
            hearings = Endpoint.hearings_by_bbl(property_key)

            async def from_hearings() -> list:
                rows = await self.engine.fetch(hearings)
                return [SanitationViolation.from_hearing(h, bin_number) for h in rows]

            strategies.append((hearings.cache_key, from_hearings))

        strategies.extend(self._lookup_strategies(
            Endpoint.sanitation_by_bin, Endpoint.sanitation_by_address, bin_number, address, name
        ))

        if address and not is_non_building_location(name, address):
            complaints = Endpoint.complaints_by_address(address)

            async def from_complaints() -> list:
                rows = await self.engine.fetch(complaints)
                return [
                    SanitationViolation.from_complaint(c, bin_number)
                    for c in rows
                    if is_sanitation_complaint(c)
                ]

            strategies.append((complaints.cache_key, from_complaints))

        return await self.first_non_empty(strategies)
