"""
Configuration for the parts quotation pipeline.

Config is declarative JSON - edit quote_config.json, not the code.
Missing sections or keys fall back to the dataclass defaults.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path

from .models import PRICE_FIELDS

DEFAULT_CONFIG_PATH = Path(__file__).parent / "quote_config.json"


@dataclass
class ReconcileSettings:
    """Settings for the reconciliation driver."""
    chunk_size: int = 20
    new_id_prefix: str = "NEW_"


@dataclass
class ExtractionSettings:
    """Settings for candidate extraction."""
    degraded_mode: bool = False
    min_identifier_length: int = 3


@dataclass
class CatalogSettings:
    """Settings for catalog persistence and pricing."""
    storage_key: str = "shipPartsData"
    default_price_option: str = "service_price_taxed"


@dataclass
class Config:
    """Full configuration for the quotation pipeline."""
    reconcile: ReconcileSettings = field(default_factory=ReconcileSettings)
    extraction: ExtractionSettings = field(default_factory=ExtractionSettings)
    catalog: CatalogSettings = field(default_factory=CatalogSettings)

    def __post_init__(self):
        if self.reconcile.chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {self.reconcile.chunk_size}")
        if self.catalog.default_price_option not in PRICE_FIELDS:
            raise ValueError(f"Unknown price option: {self.catalog.default_price_option}")


def load_config(config_path: str | Path | None = None) -> Config:
    """
    Load configuration from JSON file.

    Args:
        config_path: Path to quote_config.json (default: the module's copy)

    Returns:
        Config with reconcile, extraction and catalog settings
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    reconcile_data = data.get("reconcile", {})
    reconcile = ReconcileSettings(
        chunk_size=int(reconcile_data.get("chunk_size", 20)),
        new_id_prefix=reconcile_data.get("new_id_prefix", "NEW_"),
    )

    extraction_data = data.get("extraction", {})
    extraction = ExtractionSettings(
        degraded_mode=bool(extraction_data.get("degraded_mode", False)),
        min_identifier_length=int(extraction_data.get("min_identifier_length", 3)),
    )

    catalog_data = data.get("catalog", {})
    catalog = CatalogSettings(
        storage_key=catalog_data.get("storage_key", "shipPartsData"),
        default_price_option=catalog_data.get("default_price_option", "service_price_taxed"),
    )

    return Config(reconcile=reconcile, extraction=extraction, catalog=catalog)
