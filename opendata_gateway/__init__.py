"""Async gateway to municipal open-data compliance datasets."""

from opendata_gateway.config import GatewaySettings, DEFAULT_SETTINGS, CacheTier
from opendata_gateway.errors import (
    GatewayError,
    InvalidRequestError,
    ThrottledError,
    ServerError,
    DecodeError,
    NetworkError,
    CancelledRequestError,
)
from opendata_gateway.fetchers import Endpoint, EndpointKind
from opendata_gateway.gateway import ComplianceGateway
from opendata_gateway.utils.normalize import normalize_address, normalize_property_key

__version__ = "0.1.0"

__all__ = [
    "ComplianceGateway",
    "GatewaySettings",
    "DEFAULT_SETTINGS",
    "CacheTier",
    "Endpoint",
    "EndpointKind",
    "normalize_address",
    "normalize_property_key",
    # Errors
    "GatewayError",
    "InvalidRequestError",
    "ThrottledError",
    "ServerError",
    "DecodeError",
    "NetworkError",
    "CancelledRequestError",
]
