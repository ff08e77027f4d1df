"""Data models for the open-data gateway."""

from opendata_gateway.models.records import (
    ComplianceRecord,
    HousingViolation,
    BuildingPermit,
    CollectionRoute,
    EmissionsReport,
    WaterUsage,
    FireInspection,
    SanitationViolation,
    ServiceComplaint,
    PropertyAssessment,
    TaxBill,
    TaxLien,
    EnergyRating,
    LandmarkDesignation,
    BuildingFootprint,
    ConstructionProject,
    BusinessLicense,
    AirQualityComplaint,
    HearingRecord,
    RECORD_TYPES,
)
from opendata_gateway.models.compliance import BuildingCompliance

__all__ = [
    "ComplianceRecord",
    "HousingViolation",
    "BuildingPermit",
    "CollectionRoute",
    "EmissionsReport",
    "WaterUsage",
    "FireInspection",
    "SanitationViolation",
    "ServiceComplaint",
    "PropertyAssessment",
    "TaxBill",
    "TaxLien",
    "EnergyRating",
    "LandmarkDesignation",
    "BuildingFootprint",
    "ConstructionProject",
    "BusinessLicense",
    "AirQualityComplaint",
    "HearingRecord",
    "RECORD_TYPES",
    "BuildingCompliance",
]
