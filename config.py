"""
Central configuration for the purchase-order wizard.

All paths, endpoints, and pipeline settings are defined here.
Override via environment variables or by passing a Config instance directly.

Settings priority (highest wins):
  1. Environment variables
  2. config/order_settings.json  (admin-editable, persisted)
  3. Hardcoded defaults in this file
"""
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Project root (directory containing this file)
PROJECT_ROOT = Path(__file__).parent

# Default data locations (relative to project root)
DEFAULT_DATA_DIR       = PROJECT_ROOT / "data"
DEFAULT_OUTPUT_DIR     = PROJECT_ROOT / "output"
DEFAULT_EXPORT_DIR     = DEFAULT_OUTPUT_DIR / "export"
DEFAULT_TEMPLATES_DIR  = PROJECT_ROOT / "defaults"

# Environment variable holding the external submission endpoint
ENDPOINT_ENV_VAR = "API_ENDPOINT_POST"


def config_dir() -> Path:
    """Directory holding admin-editable settings and template overrides."""
    return Path(os.getenv("CONFIG_DIR", str(PROJECT_ROOT / "config")))


@dataclass
class Config:
    # --- Reference data ---
    data_dir: Path = field(
        default_factory=lambda: Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR)))
    )

    # --- Output settings ---
    export_dir: Path = field(
        default_factory=lambda: Path(os.getenv("EXPORT_DIR", str(DEFAULT_EXPORT_DIR)))
    )
    pretty_json: bool = True        # Indent the downloaded PO JSON for human readability
    download_enabled: bool = field(
        default_factory=lambda: os.getenv("DOWNLOAD_ENABLED", "true").lower() != "false"
    )
    # download_enabled=True writes PO_<number>.json to export_dir on every submission

    # --- Submission endpoint ---
    # The proxy route (/api/send_form_data) reads the same variable, so pointing
    # submission_url at the proxy gives the "extra hop" deployment.
    submission_url: Optional[str] = field(
        default_factory=lambda: os.getenv(ENDPOINT_ENV_VAR)
    )
    submission_timeout_seconds: int = field(
        default_factory=lambda: int(os.getenv("SUBMISSION_TIMEOUT", "30"))
    )
    submission_headers_json: Optional[str] = field(
        default_factory=lambda: os.getenv("SUBMISSION_HEADERS")
    )

    # --- Validation ---
    arithmetic_tolerance: float = 1e-6    # float noise only; totals are not rounded

    # --- Review rendering ---
    review_template: str = field(
        default_factory=lambda: os.getenv("REVIEW_TEMPLATE", "order_review.txt.j2")
    )

    def __post_init__(self) -> None:
        """Overlay runtime-tunable settings from order_settings.json if present."""
        settings_file = config_dir() / "order_settings.json"
        if not settings_file.exists():
            return
        _type_map: dict[str, type] = {
            "data_dir":                    Path,
            "export_dir":                  Path,
            "download_enabled":            bool,
            "pretty_json":                 bool,
            "submission_url":              str,
            "submission_timeout_seconds":  int,
            "submission_headers_json":     str,
            "arithmetic_tolerance":        float,
            "review_template":             str,
        }
        try:
            with open(settings_file, encoding="utf-8") as f:
                overrides = {k: v for k, v in json.load(f).items() if not k.startswith("_")}
            for key, val in overrides.items():
                # Environment variables win over the settings file
                if key == "submission_url" and os.getenv(ENDPOINT_ENV_VAR):
                    continue
                if key in _type_map and hasattr(self, key):
                    setattr(self, key, _type_map[key](val))
        except Exception as exc:
            logger.warning("Failed to load order_settings.json: %s", exc)
