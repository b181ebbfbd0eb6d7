# src/blockmigrate/core/config.py
"""
Configuration schema and loading for migration runs.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.

Table names and the partition are CLI arguments, not settings: they
change on every invocation. Settings hold what stays the same across a
fleet of per-segment workers (region, endpoint, file naming, output).
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from blockmigrate.contracts.errors import ConfigurationError

ENVVAR_PREFIX = "BLOCKMIGRATE"

# Dynaconf bookkeeping keys that leak into as_dict()
_DYNACONF_INTERNAL_KEYS = frozenset(
    {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES", "ENVVAR_PREFIX", "MERGE_ENABLED"}
)


class MigrateSettings(BaseModel):
    """Top-level migration configuration.

    Example YAML:
        region: us-west-2
        output_dir: ./segments
        progress_interval: 5000
    """

    model_config = {"frozen": True, "extra": "forbid"}

    region: str | None = Field(
        default=None,
        description="AWS region for the DynamoDB client (falls back to the boto3 default chain)",
    )
    endpoint_url: str | None = Field(
        default=None,
        description="Explicit DynamoDB endpoint URL (overrides the AWS default)",
    )
    local_endpoint_url: str = Field(
        default="http://localhost:8000",
        description="DynamoDB Local endpoint used by --local runs",
    )
    output_dir: Path = Field(
        default=Path("."),
        description="Directory for candidate and recovery NDJSON files",
    )
    scan_prefix: str = Field(
        default="migrate-block-index",
        description="File name prefix for scan output",
    )
    unprocessed_prefix: str = Field(
        default="write-unprocessed",
        description="File name prefix for write recovery output",
    )
    progress_interval: int = Field(
        default=1000,
        gt=0,
        description="Emit a progress event every N source records",
    )

    @field_validator("scan_prefix", "unprocessed_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """Prefixes must be non-empty."""
        if not v.strip():
            raise ValueError("prefix must not be empty")
        return v


def load_settings(config_path: Path | None = None) -> MigrateSettings:
    """Load settings from an optional YAML file with environment overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (BLOCKMIGRATE_*) - highest priority
    2. Config file, when given
    3. Defaults from the Pydantic schema - lowest priority

    Args:
        config_path: Optional path to a YAML configuration file

    Returns:
        Validated MigrateSettings instance

    Raises:
        FileNotFoundError: If config_path is given but doesn't exist
        ConfigurationError: If configuration fails validation
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if config_path is not None and not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix=ENVVAR_PREFIX,
        settings_files=[str(config_path)] if config_path is not None else [],
        environments=False,
        load_dotenv=False,  # the CLI loads .env itself
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; Pydantic fields are lowercase
    raw_config: dict[str, Any] = {
        k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in _DYNACONF_INTERNAL_KEYS
    }

    try:
        return MigrateSettings(**raw_config)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
