"""Utility modules for the open-data gateway."""

from opendata_gateway.utils.logging import get_logger, setup_logging
from opendata_gateway.utils.normalize import (
    normalize_property_key,
    normalize_address,
    normalize_bin,
    is_valid_property_key,
    is_valid_bin,
    split_property_key,
    borough_name,
    is_non_building_location,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "normalize_property_key",
    "normalize_address",
    "normalize_bin",
    "is_valid_property_key",
    "is_valid_bin",
    "split_property_key",
    "borough_name",
    "is_non_building_location",
]
