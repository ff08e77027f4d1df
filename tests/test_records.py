# tests/test_records.py
import pytest

from opendata_gateway.errors import DecodeError
from opendata_gateway.models import (
    BuildingPermit,
    EmissionsReport,
    HearingRecord,
    HousingViolation,
    RECORD_TYPES,
    SanitationViolation,
    ServiceComplaint,
)
from tests.fakes import complaint_row, hearing_row, permit_row, violation_row


class TestStrictDecode:
    """Test strict decoding of dataset rows."""

    def test_decodes_complete_row(self):
        record = HousingViolation.decode(violation_row())
        assert record.violation_id == "1001"
        assert record.bin == "1034304"
        assert record.violation_class == "B"
        assert record.identifier == "1001"
        assert record.record_date == "2024-03-01T00:00:00.000"
        assert record.record_status == "Open"
        assert record.group_key == "1034304"

    def test_missing_required_field(self):
        row = violation_row()
        del row["novdescription"]
        with pytest.raises(DecodeError) as exc:
            HousingViolation.decode(row)
        assert exc.value.field == "novdescription"

    def test_null_required_field(self):
        with pytest.raises(DecodeError):
            HousingViolation.decode(violation_row(currentstatus=None))

    def test_numbers_accepted_as_text(self):
        record = HousingViolation.decode(violation_row(violation_id=1001, bin_number=1034304))
        assert record.violation_id == "1001"
        assert record.bin == "1034304"

    def test_wrong_type(self):
        with pytest.raises(DecodeError):
            HousingViolation.decode(violation_row(story={"floor": 3}))

    def test_money_parsing(self):
        row = {
            "bbl": "1008490017",
            "reporting_year": "2023",
            "total_ghg_emissions_metric_tons_co2e": "1,234.5",
            "potential_fine": "$2,680.00",
        }
        record = EmissionsReport.decode(row)
        assert record.total_ghg_emissions == 1234.5
        assert record.potential_fine == 2680.0

    def test_bool_is_not_a_number(self):
        row = {"bbl": "1", "reporting_year": "2023", "total_ghg_emissions_metric_tons_co2e": True}
        with pytest.raises(DecodeError):
            EmissionsReport.decode(row)

    def test_rows_must_be_a_list(self):
        with pytest.raises(DecodeError):
            HousingViolation.decode_rows({"error": "bad query"})

    def test_empty_list(self):
        assert HousingViolation.decode_rows([]) == []

    def test_permit_reads_odd_column_names(self):
        record = BuildingPermit.decode(permit_row())
        assert record.job_number == "121234567"
        assert record.bin == "1034304"
        assert record.group_key == "1034304"


class TestLenientDecode:
    """Test partial decoding when the schema drifts."""

    def test_missing_required_but_not_essential(self):
        row = violation_row()
        del row["novdescription"]
        record = HousingViolation.decode_lenient(row)
        assert record is not None
        assert record.nov_description is None
        assert record.violation_id == "1001"

    def test_missing_essential_drops_row(self):
        row = violation_row()
        del row["violationid"]
        assert HousingViolation.decode_lenient(row) is None

    def test_malformed_field_becomes_none(self):
        row = {"bbl": "1008490017", "reporting_year": "2023",
               "total_ghg_emissions_metric_tons_co2e": "n/a"}
        record = EmissionsReport.decode_lenient(row)
        assert record.total_ghg_emissions is None

    def test_rows_skip_unusable(self):
        rows = [violation_row("1"), {"bin": "1"}, "garbage", violation_row("2", novdescription=None)]
        records = HousingViolation.decode_rows_lenient(rows)
        assert [r.violation_id for r in records] == ["1", "2"]

    def test_non_list_payload(self):
        assert HousingViolation.decode_rows_lenient(None) == []


class TestSerialization:
    """Test dict round trip used by cache snapshots."""

    def test_to_dict_from_dict(self):
        record = HousingViolation.decode(violation_row())
        assert HousingViolation.from_dict(record.to_dict()) == record

    def test_from_dict_ignores_unknown_keys(self):
        data = HousingViolation.decode(violation_row()).to_dict()
        data["extra"] = 1
        assert HousingViolation.from_dict(data).violation_id == "1001"

    def test_registry(self):
        assert RECORD_TYPES["HousingViolation"] is HousingViolation
        assert len(RECORD_TYPES) == 18

    def test_records_are_frozen(self):
        record = HousingViolation.decode(violation_row())
        with pytest.raises(AttributeError):
            record.bin = "2"


class TestSanitationMapping:
    """Test mapping secondary sources onto sanitation violations."""

    def test_from_hearing(self):
        hearing = HearingRecord.decode(hearing_row())
        violation = SanitationViolation.from_hearing(hearing, "1034304")
        assert violation.violation_id == "0123456789"
        assert violation.bin == "1034304"
        assert violation.issue_date == "2024-01-15T00:00:00.000"
        assert violation.violation_type == "DIRTY SIDEWALK"
        assert violation.fine_amount == 100.0
        assert violation.status == "DEFAULTED"
        assert violation.address == "142 WEST 17 STREET"

    def test_from_complaint(self):
        complaint = ServiceComplaint.decode(complaint_row(closed_date="2024-04-03T00:00:00.000"))
        violation = SanitationViolation.from_complaint(complaint, "1034304")
        assert violation.violation_id == "5001"
        assert violation.violation_type == "Dirty Condition"
        assert violation.address == "142 WEST 17TH STREET"
        assert violation.disposition_date == "2024-04-03T00:00:00.000"
