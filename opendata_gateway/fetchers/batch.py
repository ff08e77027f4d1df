"""
Batch fetching over many building identifiers.

Issues one set-membership query instead of one request per building and
partitions the rows back by the identifier each record carries.
"""

import logging
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Union

from opendata_gateway.fetchers.endpoints import Endpoint, EndpointKind, GROUPED_KINDS
from opendata_gateway.utils.normalize import normalize_bin

logger = logging.getLogger(__name__)

# Family name -> grouped endpoint kind
GROUPED_FAMILIES = {
    "violations": EndpointKind.VIOLATIONS_GROUPED,
    "permits": EndpointKind.PERMITS_GROUPED,
    "sanitation": EndpointKind.SANITATION_GROUPED,
}


def resolve_family(family: Union[str, EndpointKind]) -> EndpointKind:
    """Map a family name or grouped kind to its grouped EndpointKind."""
    if isinstance(family, EndpointKind):
        kind = family
    elif family in GROUPED_FAMILIES:
        kind = GROUPED_FAMILIES[family]
    else:
        try:
            kind = EndpointKind(family)
        except ValueError:
            raise ValueError(f"Unknown record family: {family}") from None
    if kind not in GROUPED_KINDS:
        raise ValueError(f"{kind.value} does not support grouped fetches")
    return kind


def months_floor(months: int, today: Optional[date] = None) -> date:
    """Date floor for a look-back window of N months (30-day months)."""
    today = today or date.today()
    return today - timedelta(days=30 * months)


class BatchAggregator:
    """Fetch a record family for many buildings with a single request."""

    def __init__(self, engine):
        """
        Initialize aggregator.

        Args:
            engine: FetchEngine used for the single grouped request
        """
        self.engine = engine

    async def fetch_grouped(
        self,
        family: Union[str, EndpointKind],
        identifiers: Sequence[str],
        months: Optional[int] = None,
        today: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, List]:
        """
        Fetch records for many identifiers in one request.

        Args:
            family: "violations", "permits", "sanitation" or a grouped EndpointKind
            identifiers: Building identification numbers
            months: Only records dated within the last N months
            today: Reference date for the months window
            limit: Row cap for the request

        Returns:
            Mapping of every requested identifier, exactly as passed, to its
            records; identifiers without rows or that do not parse as a BIN
            map to an empty list
        """
        kind = resolve_family(family)
        since = months_floor(months, today) if months else None
        normalized = {raw: normalize_bin(raw) for raw in identifiers}
        endpoint = Endpoint.grouped(
            kind,
            list(normalized.values()),
            since=since,
            limit=limit or self.engine.settings.batch_row_limit,
        )

        result: Dict[str, List] = {raw: [] for raw in normalized}
        if not endpoint.identifiers:
            if result:
                logger.warning(f"No valid BIN among {len(result)} identifiers, skipping request")
            return result

        records = await self.engine.fetch(endpoint)

        by_bin: Dict[str, List] = {b: [] for b in endpoint.identifiers}
        unmatched = 0
        for record in records:
            key = normalize_bin(record.group_key or "")
            if key in by_bin:
                by_bin[key].append(record)
            else:
                unmatched += 1

        for raw, bin_number in normalized.items():
            if bin_number:
                result[raw] = list(by_bin[bin_number])

        if unmatched:
            logger.debug(f"{unmatched} {kind.value} rows matched no requested identifier")
        logger.info(
            f"Grouped fetch {kind.value}: {len(records)} rows for {len(result)} identifiers"
        )
        return result
