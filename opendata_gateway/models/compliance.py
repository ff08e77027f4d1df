"""
Per-building compliance bundle.

Contains the dataclass returned by the gateway's concurrent per-building
fetch. Categories that failed are left empty and their error recorded.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class BuildingCompliance:
    """All compliance categories fetched for one building."""

    bin: str
    bbl: str = ""
    address: Optional[str] = None

    housing_violations: list = field(default_factory=list)
    permits: list = field(default_factory=list)
    fire_inspections: list = field(default_factory=list)
    emissions: list = field(default_factory=list)
    complaints: list = field(default_factory=list)
    sanitation_violations: list = field(default_factory=list)

    # Category name -> error message for categories that could not be fetched
    errors: dict = field(default_factory=dict)
    fetched_at: str = ""

    @property
    def complete(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "bin": self.bin,
            "bbl": self.bbl,
            "address": self.address,
            "housing_violations": [r.to_dict() for r in self.housing_violations],
            "permits": [r.to_dict() for r in self.permits],
            "fire_inspections": [r.to_dict() for r in self.fire_inspections],
            "emissions": [r.to_dict() for r in self.emissions],
            "complaints": [r.to_dict() for r in self.complaints],
            "sanitation_violations": [r.to_dict() for r in self.sanitation_violations],
            "errors": self.errors,
            "fetched_at": self.fetched_at,
        }
