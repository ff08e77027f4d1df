"""Configuration module for the open-data gateway."""

from opendata_gateway.config.settings import CacheTier, GatewaySettings, DEFAULT_SETTINGS
from opendata_gateway.config.datasets import DatasetConfig, DATASETS, get_dataset, list_datasets

__all__ = [
    "CacheTier",
    "GatewaySettings",
    "DEFAULT_SETTINGS",
    "DatasetConfig",
    "DATASETS",
    "get_dataset",
    "list_datasets",
]
