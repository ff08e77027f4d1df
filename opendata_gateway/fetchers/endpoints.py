"""
Endpoint descriptors for the open-data portal.

An Endpoint is a frozen value tagged with an EndpointKind and carrying its
typed parameters. to_url() and to_cache_key() are pure functions of the
endpoint; both dispatch through the ENDPOINT_SPECS table, which covers every
kind.
"""

import hashlib
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Type
from urllib.parse import quote

from opendata_gateway.config import DEFAULT_SETTINGS, CacheTier, DatasetConfig
from opendata_gateway.config import datasets
from opendata_gateway.models import records
from opendata_gateway.utils.normalize import (
    borough_name,
    normalize_address,
    normalize_bin,
    normalize_property_key,
    split_property_key,
)


class EndpointKind(str, Enum):
    """Closed set of endpoint variants."""

    VIOLATIONS_BY_BIN = "violations_by_bin"
    VIOLATIONS_BY_ADDRESS = "violations_by_address"
    PERMITS_BY_BIN = "permits_by_bin"
    PERMITS_BY_ADDRESS = "permits_by_address"
    SCHEDULE_BY_DISTRICT = "schedule_by_district"
    EMISSIONS_BY_BBL = "emissions_by_bbl"
    WATER_BY_ACCOUNT = "water_by_account"
    INSPECTIONS_BY_BIN = "inspections_by_bin"
    COMPLAINTS_BY_BIN = "complaints_by_bin"
    COMPLAINTS_BY_ADDRESS = "complaints_by_address"
    PROPERTY_ASSESSMENT = "property_assessment"
    TAX_BILLS = "tax_bills"
    TAX_LIENS = "tax_liens"
    ENERGY_RATING = "energy_rating"
    LANDMARK_STATUS = "landmark_status"
    FOOTPRINT_BY_BIN = "footprint_by_bin"
    FOOTPRINT_BY_LOCATION = "footprint_by_location"
    CONSTRUCTION_BY_ADDRESS = "construction_by_address"
    LICENSES_BY_ADDRESS = "licenses_by_address"
    AIR_QUALITY_BY_ADDRESS = "air_quality_by_address"
    SANITATION_BY_BIN = "sanitation_by_bin"
    SANITATION_BY_ADDRESS = "sanitation_by_address"
    HEARINGS_BY_BBL = "hearings_by_bbl"
    VIOLATIONS_GROUPED = "violations_grouped"
    PERMITS_GROUPED = "permits_grouped"
    SANITATION_GROUPED = "sanitation_grouped"


@dataclass(frozen=True)
class Endpoint:
    """
    One request to the open-data portal.

    Build instances with the classmethod constructors, which normalize
    identifiers and addresses so equal queries share a cache key.
    """

    kind: EndpointKind
    value: str = ""
    identifiers: Tuple[str, ...] = ()
    since: Optional[date] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    radius_meters: int = 25
    limit: Optional[int] = None

    @property
    def spec(self) -> "EndpointSpec":
        return ENDPOINT_SPECS[self.kind]

    @property
    def dataset(self) -> DatasetConfig:
        return self.spec.dataset

    @property
    def record_type(self) -> Type[records.ComplianceRecord]:
        return self.spec.record_type

    @property
    def tier(self) -> CacheTier:
        return self.spec.dataset.tier

    @property
    def url(self) -> str:
        return to_url(self)

    @property
    def cache_key(self) -> str:
        return to_cache_key(self)

    # Identifier-keyed variants

    @classmethod
    def violations_by_bin(cls, bin_number: str) -> "Endpoint":
        return cls(EndpointKind.VIOLATIONS_BY_BIN, normalize_bin(bin_number))

    @classmethod
    def permits_by_bin(cls, bin_number: str) -> "Endpoint":
        return cls(EndpointKind.PERMITS_BY_BIN, normalize_bin(bin_number))

    @classmethod
    def inspections_by_bin(cls, bin_number: str) -> "Endpoint":
        return cls(EndpointKind.INSPECTIONS_BY_BIN, normalize_bin(bin_number))

    @classmethod
    def complaints_by_bin(cls, bin_number: str) -> "Endpoint":
        return cls(EndpointKind.COMPLAINTS_BY_BIN, normalize_bin(bin_number))

    @classmethod
    def sanitation_by_bin(cls, bin_number: str) -> "Endpoint":
        return cls(EndpointKind.SANITATION_BY_BIN, normalize_bin(bin_number))

    @classmethod
    def footprint_by_bin(cls, bin_number: str) -> "Endpoint":
        return cls(EndpointKind.FOOTPRINT_BY_BIN, normalize_bin(bin_number))

    @classmethod
    def schedule_by_district(cls, district: str) -> "Endpoint":
        return cls(EndpointKind.SCHEDULE_BY_DISTRICT, (district or "").strip().upper())

    @classmethod
    def water_by_account(cls, account: str) -> "Endpoint":
        return cls(EndpointKind.WATER_BY_ACCOUNT, (account or "").strip())

    # Property-key variants

    @classmethod
    def emissions_by_bbl(cls, bbl: str) -> "Endpoint":
        return cls(EndpointKind.EMISSIONS_BY_BBL, normalize_property_key(bbl))

    @classmethod
    def property_assessment(cls, bbl: str) -> "Endpoint":
        return cls(EndpointKind.PROPERTY_ASSESSMENT, normalize_property_key(bbl))

    @classmethod
    def tax_bills(cls, bbl: str) -> "Endpoint":
        return cls(EndpointKind.TAX_BILLS, normalize_property_key(bbl))

    @classmethod
    def tax_liens(cls, bbl: str) -> "Endpoint":
        return cls(EndpointKind.TAX_LIENS, normalize_property_key(bbl))

    @classmethod
    def energy_rating(cls, bbl: str) -> "Endpoint":
        return cls(EndpointKind.ENERGY_RATING, normalize_property_key(bbl))

    @classmethod
    def landmark_status(cls, bbl: str) -> "Endpoint":
        return cls(EndpointKind.LANDMARK_STATUS, normalize_property_key(bbl))

    @classmethod
    def hearings_by_bbl(cls, bbl: str) -> "Endpoint":
        return cls(EndpointKind.HEARINGS_BY_BBL, normalize_property_key(bbl))

    # Address variants

    @classmethod
    def violations_by_address(cls, address: str) -> "Endpoint":
        return cls(EndpointKind.VIOLATIONS_BY_ADDRESS, normalize_address(address))

    @classmethod
    def permits_by_address(cls, address: str) -> "Endpoint":
        return cls(EndpointKind.PERMITS_BY_ADDRESS, normalize_address(address))

    @classmethod
    def complaints_by_address(cls, address: str) -> "Endpoint":
        return cls(EndpointKind.COMPLAINTS_BY_ADDRESS, normalize_address(address))

    @classmethod
    def sanitation_by_address(cls, address: str) -> "Endpoint":
        return cls(EndpointKind.SANITATION_BY_ADDRESS, normalize_address(address))

    @classmethod
    def construction_by_address(cls, address: str) -> "Endpoint":
        return cls(EndpointKind.CONSTRUCTION_BY_ADDRESS, normalize_address(address))

    @classmethod
    def licenses_by_address(cls, address: str) -> "Endpoint":
        return cls(EndpointKind.LICENSES_BY_ADDRESS, normalize_address(address))

    @classmethod
    def air_quality_by_address(cls, address: str) -> "Endpoint":
        return cls(EndpointKind.AIR_QUALITY_BY_ADDRESS, normalize_address(address))

    # Geographic variant

    @classmethod
    def footprint_by_location(cls, latitude: float, longitude: float, radius_meters: int = 25) -> "Endpoint":
        return cls(
            EndpointKind.FOOTPRINT_BY_LOCATION,
            latitude=latitude,
            longitude=longitude,
            radius_meters=radius_meters,
        )

    # Batch variants

    @classmethod
    def grouped(
        cls,
        kind: EndpointKind,
        identifiers: Sequence[str],
        since: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> "Endpoint":
        """
        Build a set-membership query over many building identifiers.

        Identifiers are normalized, de-duplicated and kept in input order.
        """
        if kind not in GROUPED_KINDS:
            raise ValueError(f"{kind.value} is not a grouped endpoint")
        seen = []
        for raw in identifiers:
            bin_number = normalize_bin(raw)
            if bin_number and bin_number not in seen:
                seen.append(bin_number)
        return cls(kind, identifiers=tuple(seen), since=since, limit=limit)


@dataclass(frozen=True)
class EndpointSpec:
    """How one endpoint kind maps onto a dataset query."""

    dataset: DatasetConfig
    record_type: Type[records.ComplianceRecord]
    key_prefix: str
    params: Callable[[Endpoint], List[Tuple[str, str]]]
    keyed_by: str = "value"  # "value", "address", "location" or "group"


def soql_literal(value: str) -> str:
    """Quote a string literal for a SoQL $where clause."""
    return "'" + str(value).replace("'", "''") + "'"


def _equals(column: str) -> Callable[[Endpoint], List[Tuple[str, str]]]:
    return lambda e: [(column, e.value)]


def _equals_upper(column: str) -> Callable[[Endpoint], List[Tuple[str, str]]]:
    return lambda e: [(column, e.value.upper())]


def _full_text(e: Endpoint) -> List[Tuple[str, str]]:
    return [("$q", e.value)]


def _within_circle(e: Endpoint) -> List[Tuple[str, str]]:
    where = f"within_circle(the_geom,{e.latitude},{e.longitude},{e.radius_meters})"
    return [("$where", where), ("$select", "bin,bbl"), ("$limit", "1")]


def _hearings_where(e: Endpoint) -> List[Tuple[str, str]]:
    parts = split_property_key(e.value)
    borough, block, lot = (parts[0], parts[1], parts[2]) if parts else (0, "", "")
    clauses = [
        "upper(issuing_agency) like '%SANITATION%'",
        f"violation_location_borough={soql_literal(borough_name(borough))}",
        f"violation_location_block_no={soql_literal(block)}",
        f"violation_location_lot_no={soql_literal(lot)}",
    ]
    return [("$where", " AND ".join(clauses))]


def _grouped_where(e: Endpoint) -> List[Tuple[str, str]]:
    dataset = ENDPOINT_SPECS[e.kind].dataset
    members = ",".join(soql_literal(i) for i in e.identifiers)
    clauses = [f"{dataset.id_field} in({members})"]
    if e.since is not None and dataset.date_field:
        clauses.append(f"{dataset.date_field} >= {soql_literal(e.since.strftime('%Y-%m-%dT00:00:00'))}")
    limit = e.limit or DEFAULT_SETTINGS.batch_row_limit
    return [("$where", " AND ".join(clauses)), ("$limit", str(limit))]


ENDPOINT_SPECS: Dict[EndpointKind, EndpointSpec] = {
    EndpointKind.VIOLATIONS_BY_BIN: EndpointSpec(
        datasets.HOUSING_VIOLATIONS, records.HousingViolation, "hpd_violations", _equals("bin")),
    EndpointKind.VIOLATIONS_BY_ADDRESS: EndpointSpec(
        datasets.HOUSING_VIOLATIONS, records.HousingViolation, "hpd_violations_addr", _full_text, "address"),
    EndpointKind.PERMITS_BY_BIN: EndpointSpec(
        datasets.BUILDING_PERMITS, records.BuildingPermit, "dob_permits", _equals("bin__")),
    EndpointKind.PERMITS_BY_ADDRESS: EndpointSpec(
        datasets.BUILDING_PERMITS, records.BuildingPermit, "dob_permits_addr", _full_text, "address"),
    EndpointKind.SCHEDULE_BY_DISTRICT: EndpointSpec(
        datasets.COLLECTION_SCHEDULE, records.CollectionRoute, "dsny_schedule", _equals("community_district")),
    EndpointKind.EMISSIONS_BY_BBL: EndpointSpec(
        datasets.EMISSIONS, records.EmissionsReport, "ll97_compliance", _equals("bbl")),
    EndpointKind.WATER_BY_ACCOUNT: EndpointSpec(
        datasets.WATER_USAGE, records.WaterUsage, "dep_water", _equals("development_name")),
    EndpointKind.INSPECTIONS_BY_BIN: EndpointSpec(
        datasets.FIRE_INSPECTIONS, records.FireInspection, "fdny_inspections", _equals("bin")),
    EndpointKind.COMPLAINTS_BY_BIN: EndpointSpec(
        datasets.SERVICE_COMPLAINTS, records.ServiceComplaint, "311_complaints", _equals("bin")),
    EndpointKind.COMPLAINTS_BY_ADDRESS: EndpointSpec(
        datasets.SERVICE_COMPLAINTS, records.ServiceComplaint, "311_complaints_addr",
        _equals_upper("incident_address"), "address"),
    EndpointKind.PROPERTY_ASSESSMENT: EndpointSpec(
        datasets.PROPERTY_ASSESSMENT, records.PropertyAssessment, "dof_property", _equals("bbl")),
    EndpointKind.TAX_BILLS: EndpointSpec(
        datasets.TAX_BILLS, records.TaxBill, "dof_tax_bills", _equals("bbl")),
    EndpointKind.TAX_LIENS: EndpointSpec(
        datasets.TAX_LIENS, records.TaxLien, "dof_tax_liens", _equals("bbl")),
    EndpointKind.ENERGY_RATING: EndpointSpec(
        datasets.ENERGY_RATINGS, records.EnergyRating, "energy_efficiency", _equals("bbl")),
    EndpointKind.LANDMARK_STATUS: EndpointSpec(
        datasets.LANDMARKS, records.LandmarkDesignation, "landmarks", _equals("bbl")),
    EndpointKind.FOOTPRINT_BY_BIN: EndpointSpec(
        datasets.BUILDING_FOOTPRINTS, records.BuildingFootprint, "footprints", _equals("bin")),
    EndpointKind.FOOTPRINT_BY_LOCATION: EndpointSpec(
        datasets.BUILDING_FOOTPRINTS, records.BuildingFootprint, "footprints_near", _within_circle, "location"),
    EndpointKind.CONSTRUCTION_BY_ADDRESS: EndpointSpec(
        datasets.ACTIVE_CONSTRUCTION, records.ConstructionProject, "construction", _full_text, "address"),
    EndpointKind.LICENSES_BY_ADDRESS: EndpointSpec(
        datasets.BUSINESS_LICENSES, records.BusinessLicense, "business_licenses", _full_text, "address"),
    EndpointKind.AIR_QUALITY_BY_ADDRESS: EndpointSpec(
        datasets.AIR_QUALITY, records.AirQualityComplaint, "air_quality",
        _equals_upper("incident_address"), "address"),
    EndpointKind.SANITATION_BY_BIN: EndpointSpec(
        datasets.SANITATION_VIOLATIONS, records.SanitationViolation, "dsny_violations", _equals("bin")),
    EndpointKind.SANITATION_BY_ADDRESS: EndpointSpec(
        datasets.SANITATION_VIOLATIONS, records.SanitationViolation, "dsny_violations_addr",
        _equals_upper("address"), "address"),
    EndpointKind.HEARINGS_BY_BBL: EndpointSpec(
        datasets.HEARINGS, records.HearingRecord, "oath_sanitation", _hearings_where),
    EndpointKind.VIOLATIONS_GROUPED: EndpointSpec(
        datasets.HOUSING_VIOLATIONS, records.HousingViolation, "hpd_violations_batch", _grouped_where, "group"),
    EndpointKind.PERMITS_GROUPED: EndpointSpec(
        datasets.BUILDING_PERMITS, records.BuildingPermit, "dob_permits_batch", _grouped_where, "group"),
    EndpointKind.SANITATION_GROUPED: EndpointSpec(
        datasets.SANITATION_VIOLATIONS, records.SanitationViolation, "dsny_violations_batch", _grouped_where, "group"),
}

GROUPED_KINDS = frozenset({
    EndpointKind.VIOLATIONS_GROUPED,
    EndpointKind.PERMITS_GROUPED,
    EndpointKind.SANITATION_GROUPED,
})


def _digest(text: str) -> str:
    # hash() is salted per process; cache keys must be stable
    return hashlib.sha1(text.encode("utf-8")).hexdigest()[:16]


def to_url(endpoint: Endpoint, host: str = DEFAULT_SETTINGS.api_host) -> str:
    """
    Build the request URL for an endpoint.

    Args:
        endpoint: Endpoint to request
        host: Portal base URL

    Returns:
        Complete URL with percent-encoded query parameters
    """
    spec = ENDPOINT_SPECS[endpoint.kind]
    param_str = "&".join(f"{k}={quote(str(v), safe='')}" for k, v in spec.params(endpoint))
    return f"{host.rstrip('/')}{spec.dataset.resource_path()}?{param_str}"


def to_cache_key(endpoint: Endpoint) -> str:
    """Build the stable cache key for an endpoint."""
    spec = ENDPOINT_SPECS[endpoint.kind]
    if spec.keyed_by == "address":
        suffix = _digest(endpoint.value.lower())
    elif spec.keyed_by == "location":
        suffix = f"{endpoint.latitude:.6f}_{endpoint.longitude:.6f}_{endpoint.radius_meters}"
    elif spec.keyed_by == "group":
        since = endpoint.since.isoformat() if endpoint.since else "all"
        suffix = f"{_digest(','.join(sorted(endpoint.identifiers)))}_{since}_{endpoint.limit or ''}"
    else:
        suffix = endpoint.value
    return f"{spec.key_prefix}_{suffix}"


def describe_endpoints() -> list[dict]:
    """List every endpoint kind with its dataset and cache tier."""
    return [
        {
            "kind": kind.value,
            "dataset": spec.dataset.dataset_id,
            "record_type": spec.record_type.__name__,
            "tier": spec.dataset.tier.value,
        }
        for kind, spec in ENDPOINT_SPECS.items()
    ]
