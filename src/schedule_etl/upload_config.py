"""schedule_etl.upload_config

YAML run configuration for schedule uploads.

Usage:
    from pathlib import Path
    from schedule_etl.upload_config import load_upload_config

    config = load_upload_config(Path("config/schedule_upload.yml"))
    config.infile_dir  # -> Path("./artifacts/infile")
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_INFILE_DIR = Path("./artifacts/infile")
DEFAULT_REPORTS_DIR = Path("./artifacts/reports")
DEFAULT_DAY_BOUNDARY_HOUR = 6

ALLOWED_YAML_KEYS = frozenset({"infile_dir", "reports_dir", "day_boundary_hour"})


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class UploadConfigValidationError(ValueError):
    """Raised when a YAML upload config fails validation."""


# ---------------------------------------------------------------------------
# UploadConfig dataclass
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class UploadConfig:
    infile_dir: Path = DEFAULT_INFILE_DIR
    reports_dir: Path = DEFAULT_REPORTS_DIR
    day_boundary_hour: int = DEFAULT_DAY_BOUNDARY_HOUR
    yaml_hash: str | None = field(default=None, compare=False)

    def with_infile_dir(self, infile_dir: str | Path | None) -> "UploadConfig":
        if infile_dir is None:
            return self
        return replace(self, infile_dir=Path(infile_dir))


# ---------------------------------------------------------------------------
# Loader + validator
# ---------------------------------------------------------------------------

def load_upload_config(yaml_path: Path | None) -> UploadConfig:
    """Load and validate an UploadConfig; ``None`` gives the defaults.

    Raises:
        UploadConfigValidationError: If the document is malformed.
        FileNotFoundError: If the YAML file does not exist.
    """
    if yaml_path is None:
        return UploadConfig()
    raw = yaml_path.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(raw) or {}
    except yaml.YAMLError as exc:
        raise UploadConfigValidationError(f"{yaml_path} is not valid YAML: {exc}") from exc
    validate_upload_config(data)
    return UploadConfig(
        infile_dir=Path(data.get("infile_dir", DEFAULT_INFILE_DIR)),
        reports_dir=Path(data.get("reports_dir", DEFAULT_REPORTS_DIR)),
        day_boundary_hour=int(data.get("day_boundary_hour", DEFAULT_DAY_BOUNDARY_HOUR)),
        yaml_hash=hashlib.sha256(raw.encode("utf-8")).hexdigest(),
    )


def validate_upload_config(data: Any) -> None:
    if not isinstance(data, dict):
        raise UploadConfigValidationError("upload config must be a YAML mapping")

    unknown = set(data) - ALLOWED_YAML_KEYS
    if unknown:
        raise UploadConfigValidationError(f"unknown config keys: {sorted(unknown)}")

    for key in ("infile_dir", "reports_dir"):
        if key in data and not isinstance(data[key], str):
            raise UploadConfigValidationError(f"{key} must be a string path")

    if "day_boundary_hour" in data:
        hour = data["day_boundary_hour"]
        if isinstance(hour, bool) or not isinstance(hour, int) or not 0 <= hour <= 23:
            raise UploadConfigValidationError(
                f"day_boundary_hour must be an integer 0-23, got {hour!r}"
            )
