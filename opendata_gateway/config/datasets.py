"""
Configuration for external open-data datasets.

Contains the dataset identifiers and column names of the municipal
open-data portal resources queried by the gateway.
"""

from dataclasses import dataclass
from typing import Optional

from opendata_gateway.config.settings import CacheTier


@dataclass(frozen=True)
class DatasetConfig:
    """Configuration for one open-data dataset."""

    key: str
    dataset_id: str              # Portal resource id, e.g. "wvxf-dwi5"
    description: str
    tier: CacheTier = CacheTier.MEDIUM

    # Column names used for filtering
    id_field: Optional[str] = None
    date_field: Optional[str] = None
    address_field: Optional[str] = None

    def resource_path(self) -> str:
        """Path of the JSON resource relative to the portal host."""
        return f"/resource/{self.dataset_id}.json"


HOUSING_VIOLATIONS = DatasetConfig(
    key="housing_violations",
    dataset_id="wvxf-dwi5",
    description="Housing maintenance code violations",
    id_field="bin",
    date_field="inspectiondate",
)

BUILDING_PERMITS = DatasetConfig(
    key="building_permits",
    dataset_id="ipu4-2q9a",
    description="Building permit issuance",
    # The permit issuance dataset names its BIN column `bin__`
    id_field="bin__",
    date_field="filing_date",
)

COLLECTION_SCHEDULE = DatasetConfig(
    key="collection_schedule",
    dataset_id="ebb7-mvp5",
    description="Sanitation collection routes",
    tier=CacheTier.VOLATILE,
    id_field="community_district",
)

SANITATION_VIOLATIONS = DatasetConfig(
    key="sanitation_violations",
    dataset_id="weg2-hvnf",
    description="Sanitation violations",
    id_field="bin",
    date_field="issue_date",
    address_field="address",
)

EMISSIONS = DatasetConfig(
    key="emissions",
    dataset_id="8vys-2eex",
    description="Building emissions reports",
    id_field="bbl",
)

WATER_USAGE = DatasetConfig(
    key="water_usage",
    dataset_id="66be-66yr",
    description="Water consumption and charges",
    id_field="development_name",
)

FIRE_INSPECTIONS = DatasetConfig(
    key="fire_inspections",
    dataset_id="3h2n-5cm9",
    description="Fire prevention inspections",
    id_field="bin",
)

SERVICE_COMPLAINTS = DatasetConfig(
    key="service_complaints",
    dataset_id="erm2-nwe9",
    description="Service request complaints",
    tier=CacheTier.SHORT,
    id_field="bin",
    date_field="created_date",
    address_field="incident_address",
)

PROPERTY_ASSESSMENT = DatasetConfig(
    key="property_assessment",
    dataset_id="yjxr-fw9i",
    description="Property valuation and assessment",
    tier=CacheTier.LONG,
    id_field="bbl",
)

TAX_BILLS = DatasetConfig(
    key="tax_bills",
    dataset_id="wdu4-qxpx",
    description="Property tax bills",
    id_field="bbl",
)

TAX_LIENS = DatasetConfig(
    key="tax_liens",
    dataset_id="9rz4-mjek",
    description="Tax lien sale list",
    id_field="bbl",
)

ENERGY_RATINGS = DatasetConfig(
    key="energy_ratings",
    dataset_id="usc3-8zwd",
    description="Energy efficiency ratings",
    tier=CacheTier.LONG,
    id_field="bbl",
)

LANDMARKS = DatasetConfig(
    key="landmarks",
    dataset_id="ju8n-zjd8",
    description="Landmark designations",
    tier=CacheTier.LONG,
    id_field="bbl",
)

BUILDING_FOOTPRINTS = DatasetConfig(
    key="building_footprints",
    dataset_id="nqwf-w8eh",
    description="Building footprints",
    tier=CacheTier.LONG,
    id_field="bin",
)

ACTIVE_CONSTRUCTION = DatasetConfig(
    key="active_construction",
    dataset_id="ic3t-wcy2",
    description="Active construction projects",
)

BUSINESS_LICENSES = DatasetConfig(
    key="business_licenses",
    dataset_id="w7w3-xahh",
    description="Business licenses",
)

AIR_QUALITY = DatasetConfig(
    key="air_quality",
    dataset_id="c3uy-2p5r",
    description="Air quality complaints",
    tier=CacheTier.SHORT,
    address_field="incident_address",
)

HEARINGS = DatasetConfig(
    key="hearings",
    dataset_id="jz4z-kudi",
    description="Administrative hearings on issued violations",
    date_field="violation_date",
)


# Registry of all available datasets
DATASETS = {
    config.key: config
    for config in (
        HOUSING_VIOLATIONS,
        BUILDING_PERMITS,
        COLLECTION_SCHEDULE,
        SANITATION_VIOLATIONS,
        EMISSIONS,
        WATER_USAGE,
        FIRE_INSPECTIONS,
        SERVICE_COMPLAINTS,
        PROPERTY_ASSESSMENT,
        TAX_BILLS,
        TAX_LIENS,
        ENERGY_RATINGS,
        LANDMARKS,
        BUILDING_FOOTPRINTS,
        ACTIVE_CONSTRUCTION,
        BUSINESS_LICENSES,
        AIR_QUALITY,
        HEARINGS,
    )
}


def get_dataset(key: str) -> DatasetConfig:
    """
    Get dataset configuration by key.

    Args:
        key: Dataset key, e.g. "housing_violations"

    Returns:
        DatasetConfig

    Raises:
        ValueError: If the key is unknown
    """
    try:
        return DATASETS[key]
    except KeyError:
        raise ValueError(f"Unknown dataset: {key}") from None


def list_datasets() -> list[dict]:
    """List all registered datasets."""
    return [
        {
            "key": config.key,
            "dataset_id": config.dataset_id,
            "description": config.description,
            "tier": config.tier.value,
        }
        for config in DATASETS.values()
    ]
