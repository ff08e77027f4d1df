"""
Compliance record models.

Contains frozen dataclasses for the rows returned by the open-data
datasets. Each field declares the source column it is read from and
whether the strict decoder requires it. A smaller set of "essential"
fields drives the lenient decode used when the portal's schema drifts
and the strict decode fails.
"""

from dataclasses import dataclass, field, fields, asdict
from typing import Any, ClassVar, Dict, List, Optional

from opendata_gateway.errors import DecodeError


# Converters: raise TypeError/ValueError on values that do not fit

def to_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected text, got {type(value).__name__}")
    return str(value)


def to_float(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError("expected number, got bool")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        return float(value.replace(",", "").replace("$", "").strip())
    raise TypeError(f"expected number, got {type(value).__name__}")


def to_int(value: Any) -> int:
    number = to_float(value)
    if not number.is_integer():
        raise ValueError(f"expected integer, got {value!r}")
    return int(number)


def column(source: str, convert=to_str, required: bool = False, essential: bool = False):
    """
    Declare a record field read from a dataset column.

    Args:
        source: Column name in the JSON row
        convert: Converter applied to non-null values
        required: Strict decode fails when the column is missing or null
        essential: Lenient decode drops the row when the column is unusable
    """
    return field(
        default=None,
        metadata={
            "source": source,
            "convert": convert,
            "required": required or essential,
            "essential": essential,
        },
    )


@dataclass(frozen=True)
class ComplianceRecord:
    """
    Base class for decoded dataset rows.

    Subclasses name their natural identifier, date and status attributes so
    callers can treat every record family uniformly.
    """

    ID_FIELD: ClassVar[str] = ""
    DATE_FIELD: ClassVar[Optional[str]] = None
    STATUS_FIELD: ClassVar[Optional[str]] = None
    # Attribute holding the identifier that batch queries group on
    GROUP_FIELD: ClassVar[Optional[str]] = None

    @classmethod
    def decode(cls, row: Any) -> "ComplianceRecord":
        """
        Strictly decode one JSON row.

        Raises:
            DecodeError: If the row is not an object, a required column is
                missing or null, or a value has the wrong type
        """
        if not isinstance(row, dict):
            raise DecodeError(f"{cls.__name__}: row is not an object")
        values = {}
        for f in fields(cls):
            meta = f.metadata
            raw = row.get(meta["source"])
            if raw is None:
                if meta["required"]:
                    raise DecodeError(f"{cls.__name__}: missing {meta['source']}", field=meta["source"])
                values[f.name] = None
                continue
            try:
                values[f.name] = meta["convert"](raw)
            except (TypeError, ValueError) as e:
                raise DecodeError(f"{cls.__name__}: bad {meta['source']}: {e}", field=meta["source"]) from e
        return cls(**values)

    @classmethod
    def decode_lenient(cls, row: Any) -> Optional["ComplianceRecord"]:
        """
        Decode one JSON row keeping whatever fields are usable.

        Returns None when the row is not an object or an essential field is
        missing or malformed; every other bad field becomes None.
        """
        if not isinstance(row, dict):
            return None
        values = {}
        for f in fields(cls):
            meta = f.metadata
            raw = row.get(meta["source"])
            value = None
            if raw is not None:
                try:
                    value = meta["convert"](raw)
                except (TypeError, ValueError):
                    value = None
            if value is None and meta["essential"]:
                return None
            values[f.name] = value
        return cls(**values)

    @classmethod
    def decode_rows(cls, payload: Any) -> List["ComplianceRecord"]:
        """Strictly decode a JSON array of rows."""
        if not isinstance(payload, list):
            raise DecodeError(f"{cls.__name__}: expected a JSON array")
        return [cls.decode(row) for row in payload]

    @classmethod
    def decode_rows_lenient(cls, payload: Any) -> List["ComplianceRecord"]:
        """Leniently decode a JSON array, dropping unusable rows."""
        if not isinstance(payload, list):
            return []
        records = (cls.decode_lenient(row) for row in payload)
        return [r for r in records if r is not None]

    @property
    def identifier(self) -> Optional[str]:
        return getattr(self, self.ID_FIELD, None)

    @property
    def record_date(self) -> Optional[str]:
        return getattr(self, self.DATE_FIELD, None) if self.DATE_FIELD else None

    @property
    def record_status(self) -> Optional[str]:
        return getattr(self, self.STATUS_FIELD, None) if self.STATUS_FIELD else None

    @property
    def group_key(self) -> Optional[str]:
        return getattr(self, self.GROUP_FIELD, None) if self.GROUP_FIELD else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ComplianceRecord":
        """Rebuild a record from to_dict() output."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})


@dataclass(frozen=True)
class HousingViolation(ComplianceRecord):
    """Housing maintenance code violation."""

    ID_FIELD: ClassVar[str] = "violation_id"
    DATE_FIELD: ClassVar[Optional[str]] = "inspection_date"
    STATUS_FIELD: ClassVar[Optional[str]] = "violation_status"
    GROUP_FIELD: ClassVar[Optional[str]] = "bin"

    violation_id: Optional[str] = column("violationid", essential=True)
    bin: Optional[str] = column("bin", required=True)
    building_id: Optional[str] = column("buildingid")
    apartment: Optional[str] = column("apartment")
    story: Optional[str] = column("story")
    inspection_date: Optional[str] = column("inspectiondate", required=True)
    nov_issued_date: Optional[str] = column("novissueddate")
    violation_class: Optional[str] = column("class")
    current_status: Optional[str] = column("currentstatus", required=True)
    current_status_date: Optional[str] = column("currentstatusdate")
    new_correct_by_date: Optional[str] = column("newcorrectbydate")
    nov_description: Optional[str] = column("novdescription", required=True)
    violation_status: Optional[str] = column("violationstatus", required=True)


@dataclass(frozen=True)
class BuildingPermit(ComplianceRecord):
    """Issued building permit."""

    ID_FIELD: ClassVar[str] = "job_number"
    DATE_FIELD: ClassVar[Optional[str]] = "filing_date"
    STATUS_FIELD: ClassVar[Optional[str]] = "permit_status"
    GROUP_FIELD: ClassVar[Optional[str]] = "bin"

    job_number: Optional[str] = column("job__", essential=True)
    bin: Optional[str] = column("bin__", required=True)
    borough: Optional[str] = column("borough", required=True)
    job_type: Optional[str] = column("job_type", required=True)
    work_type: Optional[str] = column("work_type")
    permit_status: Optional[str] = column("permit_status", required=True)
    permit_type: Optional[str] = column("permit_type")
    filing_date: Optional[str] = column("filing_date", required=True)
    issuance_date: Optional[str] = column("issuance_date")
    expiration_date: Optional[str] = column("expiration_date")
    job_start_date: Optional[str] = column("job_start_date")
    owner_name: Optional[str] = column("owner_s_business_name")
    description: Optional[str] = column("job_description")


@dataclass(frozen=True)
class CollectionRoute(ComplianceRecord):
    """Sanitation collection route for a community district."""

    ID_FIELD: ClassVar[str] = "route"
    DATE_FIELD: ClassVar[Optional[str]] = "day_of_week"
    STATUS_FIELD: ClassVar[Optional[str]] = "service_type"

    community_district: Optional[str] = column("community_district", essential=True)
    section: Optional[str] = column("section")
    route: Optional[str] = column("route")
    day_of_week: Optional[str] = column("day_of_week", required=True)
    time: Optional[str] = column("time")
    service_type: Optional[str] = column("service_type", required=True)
    borough: Optional[str] = column("borough")


@dataclass(frozen=True)
class EmissionsReport(ComplianceRecord):
    """Annual greenhouse-gas emissions report for a property."""

    ID_FIELD: ClassVar[str] = "bbl"
    DATE_FIELD: ClassVar[Optional[str]] = "reporting_year"

    bbl: Optional[str] = column("bbl", essential=True)
    property_name: Optional[str] = column("property_name")
    primary_property_type: Optional[str] = column("primary_property_type")
    reported_address: Optional[str] = column("reported_address")
    borough: Optional[str] = column("borough")
    reporting_year: Optional[str] = column("reporting_year", required=True)
    total_ghg_emissions: Optional[float] = column("total_ghg_emissions_metric_tons_co2e", to_float, required=True)
    emissions_limit: Optional[float] = column("emissions_limit_metric_tons_co2e", to_float)
    emissions_over_limit: Optional[float] = column("emissions_over_limit_metric_tons_co2e", to_float)
    potential_fine: Optional[float] = column("potential_fine", to_float)
    energy_use_intensity: Optional[float] = column("site_energy_use_intensity_kbtu_ft2", to_float)


@dataclass(frozen=True)
class WaterUsage(ComplianceRecord):
    """Water consumption and charges for a service period."""

    ID_FIELD: ClassVar[str] = "account_number"
    DATE_FIELD: ClassVar[Optional[str]] = "service_end_date"

    account_number: Optional[str] = column("account_number", essential=True)
    development_name: Optional[str] = column("development_name", required=True)
    borough: Optional[str] = column("borough")
    current_charges: Optional[float] = column("current_charges", to_float)
    new_charges: Optional[float] = column("new_charges", to_float)
    consumption_hcf: Optional[float] = column("consumption_hcf", to_float)
    service_start_date: Optional[str] = column("service_start_date")
    service_end_date: Optional[str] = column("service_end_date", required=True)
    meter_number: Optional[str] = column("meter_number")


@dataclass(frozen=True)
class FireInspection(ComplianceRecord):
    """Fire prevention inspection outcome."""

    ID_FIELD: ClassVar[str] = "bin"
    DATE_FIELD: ClassVar[Optional[str]] = "inspection_date"
    STATUS_FIELD: ClassVar[Optional[str]] = "result"
    GROUP_FIELD: ClassVar[Optional[str]] = "bin"

    bin: Optional[str] = column("bin", essential=True)
    inspection_date: Optional[str] = column("inspection_date", required=True)
    inspection_type: Optional[str] = column("inspection_type", required=True)
    result: Optional[str] = column("result", required=True)
    violation_number: Optional[str] = column("violation_number")
    violation_details: Optional[str] = column("violation_details")
    borough: Optional[str] = column("borough")
    certificate_number: Optional[str] = column("certificate_number")
    expiration_date: Optional[str] = column("expiration_date")


@dataclass(frozen=True)
class SanitationViolation(ComplianceRecord):
    """Sanitation violation issued against a building."""

    ID_FIELD: ClassVar[str] = "violation_id"
    DATE_FIELD: ClassVar[Optional[str]] = "issue_date"
    STATUS_FIELD: ClassVar[Optional[str]] = "status"
    GROUP_FIELD: ClassVar[Optional[str]] = "bin"

    violation_id: Optional[str] = column("violation_id", essential=True)
    bin: Optional[str] = column("bin", required=True)
    issue_date: Optional[str] = column("issue_date", required=True)
    hearing_date: Optional[str] = column("hearing_date")
    violation_type: Optional[str] = column("violation_type", required=True)
    fine_amount: Optional[float] = column("fine_amount", to_float)
    status: Optional[str] = column("status", required=True)
    borough: Optional[str] = column("borough")
    address: Optional[str] = column("address")
    violation_details: Optional[str] = column("violation_details")
    disposition_code: Optional[str] = column("disposition_code")
    disposition_date: Optional[str] = column("disposition_date")

    @classmethod
    def from_hearing(cls, hearing: "HearingRecord", bin_number: str = "") -> "SanitationViolation":
        """Map a hearings-dataset row onto the sanitation violation shape."""
        address = " ".join(p for p in (hearing.house_number, hearing.street_name) if p)
        return cls(
            violation_id=hearing.ticket_number,
            bin=bin_number or None,
            issue_date=hearing.violation_date,
            hearing_date=hearing.hearing_date,
            violation_type=hearing.charge_description,
            fine_amount=hearing.penalty_imposed,
            status=hearing.hearing_status,
            borough=hearing.borough,
            address=address or None,
            violation_details=hearing.hearing_result,
        )

    @classmethod
    def from_complaint(cls, complaint: "ServiceComplaint", bin_number: str = "") -> "SanitationViolation":
        """Map a sanitation-related service complaint onto the violation shape."""
        return cls(
            violation_id=complaint.unique_key,
            bin=bin_number or complaint.bin,
            issue_date=complaint.created_date,
            violation_type=complaint.complaint_type,
            status=complaint.status,
            borough=complaint.borough,
            address=complaint.incident_address,
            violation_details=complaint.descriptor,
            disposition_date=complaint.closed_date,
        )


@dataclass(frozen=True)
class ServiceComplaint(ComplianceRecord):
    """Service request complaint."""

    ID_FIELD: ClassVar[str] = "unique_key"
    DATE_FIELD: ClassVar[Optional[str]] = "created_date"
    STATUS_FIELD: ClassVar[Optional[str]] = "status"
    GROUP_FIELD: ClassVar[Optional[str]] = "bin"

    unique_key: Optional[str] = column("unique_key", essential=True)
    created_date: Optional[str] = column("created_date", required=True)
    closed_date: Optional[str] = column("closed_date")
    agency: Optional[str] = column("agency", required=True)
    complaint_type: Optional[str] = column("complaint_type", required=True)
    descriptor: Optional[str] = column("descriptor")
    incident_address: Optional[str] = column("incident_address")
    borough: Optional[str] = column("borough")
    status: Optional[str] = column("status", required=True)
    resolution: Optional[str] = column("resolution_description")
    bin: Optional[str] = column("bin")


@dataclass(frozen=True)
class PropertyAssessment(ComplianceRecord):
    """Property valuation and assessment."""

    ID_FIELD: ClassVar[str] = "bbl"
    DATE_FIELD: ClassVar[Optional[str]] = "assessment_year"
    STATUS_FIELD: ClassVar[Optional[str]] = "tax_class"

    bbl: Optional[str] = column("bbl", essential=True)
    block: Optional[str] = column("block")
    lot: Optional[str] = column("lot")
    owner_name: Optional[str] = column("owner_name", required=True)
    building_class: Optional[str] = column("building_class_at_present", required=True)
    address: Optional[str] = column("address_1")
    zip_code: Optional[str] = column("zip_code")
    residential_units: Optional[int] = column("residential_units", to_int)
    total_units: Optional[int] = column("total_units", to_int)
    year_built: Optional[int] = column("year_built", to_int)
    tax_class: Optional[str] = column("tax_class_at_present")
    assessed_value_total: Optional[float] = column("assessed_value_total", to_float)
    market_value: Optional[float] = column("market_value", to_float)
    assessment_year: Optional[int] = column("assessment_year", to_int)


@dataclass(frozen=True)
class TaxBill(ComplianceRecord):
    """Property tax bill for a fiscal year."""

    ID_FIELD: ClassVar[str] = "bbl"
    DATE_FIELD: ClassVar[Optional[str]] = "fiscal_year"

    bbl: Optional[str] = column("bbl", essential=True)
    fiscal_year: Optional[str] = column("fiscal_year", required=True)
    bill_id: Optional[str] = column("bill_id")
    property_tax: Optional[float] = column("property_tax", to_float)
    annual_amount: Optional[float] = column("annual_amount", to_float)
    amount_paid: Optional[float] = column("property_tax_paid", to_float)
    paid_date: Optional[str] = column("paid_date")
    outstanding_amount: Optional[float] = column("outstanding_amount", to_float)


@dataclass(frozen=True)
class TaxLien(ComplianceRecord):
    """Tax lien sale entry."""

    ID_FIELD: ClassVar[str] = "bbl"
    DATE_FIELD: ClassVar[Optional[str]] = "sale_date"

    bbl: Optional[str] = column("bbl", essential=True)
    tax_year: Optional[str] = column("tax_year", required=True)
    lien_amount: Optional[float] = column("lien_amount", to_float)
    sale_date: Optional[str] = column("sale_date")
    purchaser: Optional[str] = column("purchaser")
    address: Optional[str] = column("address")
    borough: Optional[str] = column("borough")


@dataclass(frozen=True)
class EnergyRating(ComplianceRecord):
    """Energy efficiency rating."""

    ID_FIELD: ClassVar[str] = "bbl"
    DATE_FIELD: ClassVar[Optional[str]] = "reporting_year"

    bbl: Optional[str] = column("bbl", essential=True)
    property_name: Optional[str] = column("property_name")
    energy_star_score: Optional[int] = column("energy_star_score", to_int)
    site_energy_use: Optional[float] = column("site_energy_use_kbtu", to_float)
    source_energy_use: Optional[float] = column("source_energy_use_kbtu", to_float)
    total_ghg_emissions: Optional[float] = column("total_ghg_emissions_metric_tons_co2e", to_float)
    reporting_year: Optional[int] = column("reporting_year", to_int, required=True)


@dataclass(frozen=True)
class LandmarkDesignation(ComplianceRecord):
    """Landmark designation of a building."""

    ID_FIELD: ClassVar[str] = "lp_number"
    DATE_FIELD: ClassVar[Optional[str]] = "date_designated"
    STATUS_FIELD: ClassVar[Optional[str]] = "designation_type"

    lp_number: Optional[str] = column("lp_number", essential=True)
    bbl: Optional[str] = column("bbl", required=True)
    building_name: Optional[str] = column("building_name")
    borough: Optional[str] = column("borough")
    address: Optional[str] = column("address")
    designation_type: Optional[str] = column("designation_type")
    landmark_type: Optional[str] = column("landmark_type")
    date_designated: Optional[str] = column("date_designated")


@dataclass(frozen=True)
class BuildingFootprint(ComplianceRecord):
    """Building footprint attributes."""

    ID_FIELD: ClassVar[str] = "bin"
    DATE_FIELD: ClassVar[Optional[str]] = "construction_year"

    bin: Optional[str] = column("bin", essential=True)
    bbl: Optional[str] = column("bbl")
    construction_year: Optional[str] = column("cnstrct_yr")
    alteration_year: Optional[str] = column("alt_yr")
    num_floors: Optional[str] = column("num_floors")
    height_roof: Optional[float] = column("heightroof", to_float)
    ground_elevation: Optional[float] = column("groundelev", to_float)
    shape_area: Optional[float] = column("shape_area", to_float)


@dataclass(frozen=True)
class ConstructionProject(ComplianceRecord):
    """Active construction project at an address."""

    ID_FIELD: ClassVar[str] = "address"
    DATE_FIELD: ClassVar[Optional[str]] = "issuance_date"
    STATUS_FIELD: ClassVar[Optional[str]] = "permit_type"

    address: Optional[str] = column("house_no_street_name", essential=True)
    bin: Optional[str] = column("bin")
    bbl: Optional[str] = column("bbl")
    borough: Optional[str] = column("borough")
    work_type: Optional[str] = column("work_type", required=True)
    permit_type: Optional[str] = column("permit_type", required=True)
    work_description: Optional[str] = column("work_description")
    applicant_name: Optional[str] = column("applicant_s_first_name")
    filing_date: Optional[str] = column("filing_date")
    issuance_date: Optional[str] = column("issuance_date", required=True)
    expiration_date: Optional[str] = column("expiration_date")


@dataclass(frozen=True)
class BusinessLicense(ComplianceRecord):
    """Business license at an address."""

    ID_FIELD: ClassVar[str] = "license_number"
    DATE_FIELD: ClassVar[Optional[str]] = "license_creation_date"
    STATUS_FIELD: ClassVar[Optional[str]] = "license_status"

    license_number: Optional[str] = column("license_nbr", essential=True)
    business_name: Optional[str] = column("business_name", required=True)
    address: Optional[str] = column("address")
    borough: Optional[str] = column("borough")
    zip_code: Optional[str] = column("zip")
    license_type: Optional[str] = column("license_type")
    industry: Optional[str] = column("industry")
    license_status: Optional[str] = column("license_status", required=True)
    license_creation_date: Optional[str] = column("license_creation_date")
    license_expiration_date: Optional[str] = column("license_expiration_date")


@dataclass(frozen=True)
class AirQualityComplaint(ComplianceRecord):
    """Air quality complaint at an address."""

    ID_FIELD: ClassVar[str] = "unique_key"
    DATE_FIELD: ClassVar[Optional[str]] = "created_date"
    STATUS_FIELD: ClassVar[Optional[str]] = "status"

    unique_key: Optional[str] = column("unique_key", essential=True)
    created_date: Optional[str] = column("created_date", required=True)
    closed_date: Optional[str] = column("closed_date")
    complaint_type: Optional[str] = column("complaint_type", required=True)
    descriptor: Optional[str] = column("descriptor")
    incident_address: Optional[str] = column("incident_address")
    borough: Optional[str] = column("borough")
    latitude: Optional[float] = column("latitude", to_float)
    longitude: Optional[float] = column("longitude", to_float)
    status: Optional[str] = column("status", required=True)


@dataclass(frozen=True)
class HearingRecord(ComplianceRecord):
    """Administrative hearing on an issued violation."""

    ID_FIELD: ClassVar[str] = "ticket_number"
    DATE_FIELD: ClassVar[Optional[str]] = "violation_date"
    STATUS_FIELD: ClassVar[Optional[str]] = "hearing_status"

    ticket_number: Optional[str] = column("ticket_number", essential=True)
    issuing_agency: Optional[str] = column("issuing_agency", required=True)
    violation_date: Optional[str] = column("violation_date", required=True)
    hearing_date: Optional[str] = column("hearing_date")
    hearing_status: Optional[str] = column("hearing_status")
    hearing_result: Optional[str] = column("hearing_result")
    charge_description: Optional[str] = column("charge_1_code_description")
    penalty_imposed: Optional[float] = column("penalty_imposed", to_float)
    balance_due: Optional[float] = column("balance_due", to_float)
    borough: Optional[str] = column("violation_location_borough")
    block: Optional[str] = column("violation_location_block_no")
    lot: Optional[str] = column("violation_location_lot_no")
    house_number: Optional[str] = column("violation_location_house")
    street_name: Optional[str] = column("violation_location_street_name")


# Registry by class name, used to rehydrate cache snapshots
RECORD_TYPES = {
    cls.__name__: cls
    for cls in (
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
    )
}
