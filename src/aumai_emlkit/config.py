"""Lesson configuration for aumai-emlkit."""

from __future__ import annotations

import logging
import os
from datetime import date
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from aumai_emlkit.models import KeywordSet, License

logger = logging.getLogger(__name__)

SCHEMA_ENV_VAR = "AUMAI_EMLKIT_SCHEMA"

EXAMPLE_DIR = Path(__file__).parent / "data"
EXAMPLE_CONFIG = EXAMPLE_DIR / "lesson.yaml"


class ConfigError(ValueError):
    """Raised when a lesson configuration cannot be loaded."""


class PersonEntry(BaseModel):
    """A person string plus the details it cannot carry."""

    name: str = Field(..., description="Person string, e.g. 'Aaron Ellison <ae@example.org>'.")
    organization: str | None = None
    phone: str | None = None
    online_url: str | None = None
    orcid: str | None = Field(default=None, description="ORCID iD URL.")

    @classmethod
    def coerce(cls, value: object) -> object:
        return {"name": value} if isinstance(value, str) else value


class CoverageConfig(BaseModel):
    """Which data columns feed the coverage block."""

    date_column: str | None = None
    taxon_column: str | None = None
    latitude_column: str | None = None
    longitude_column: str | None = None
    geographic_description: str | None = None
    altitude_minimum: float | None = None
    altitude_maximum: float | None = None
    altitude_units: str | None = None


class LessonConfig(BaseModel):
    """Everything the lesson pipeline needs to build one EML document.

    Relative paths are resolved against ``base_dir``, which ``load_config``
    sets to the directory holding the configuration file. A relative
    ``base_dir`` in the file is taken relative to that directory.
    """

    base_dir: Path = Field(default=Path("."), description="Directory for relative paths.")

    title: str = Field(..., min_length=1)
    short_name: str | None = None
    pub_date: date | None = None
    language: str | None = "en"
    abstract_file: Path
    methods_file: Path | None = None
    license: License | None = None
    keyword_sets: list[KeywordSet] = Field(default_factory=list)

    creators: list[PersonEntry] = Field(..., min_length=1)
    contacts: list[PersonEntry] = Field(..., min_length=1)
    metadata_providers: list[PersonEntry] = Field(default_factory=list)
    associated_parties: list[PersonEntry] = Field(default_factory=list)

    data_file: Path
    export_filename: str | None = Field(
        default=None,
        description="File name of the exported table; defaults to the data file name.",
    )
    entity_name: str | None = None
    entity_description: str | None = None
    attributes_file: Path
    factors_file: Path | None = None
    column_classes: dict[str, str] = Field(default_factory=dict)
    coverage: CoverageConfig = Field(default_factory=CoverageConfig)

    checksum_method: str = "MD5"
    data_url: str | None = None
    output_dir: Path = Path("output")
    eml_filename: str = "eml.xml"
    schema_path: Path | None = None

    @field_validator(
        "creators", "contacts", "metadata_providers", "associated_parties", mode="before"
    )
    @classmethod
    def _person_strings(cls, value: object) -> object:
        if isinstance(value, (str, dict)):
            value = [value]
        if isinstance(value, list):
            return [PersonEntry.coerce(item) for item in value]
        return value

    def resolve(self, path: Path) -> Path:
        """Resolve ``path`` against ``base_dir`` unless it is absolute."""
        return path if path.is_absolute() else self.base_dir / path


def load_config(path: str | Path) -> LessonConfig:
    """Load a YAML (or JSON) lesson configuration file.

    Raises:
        ConfigError: If the file is missing, unparseable or invalid.
    """
    path = Path(path)
    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config {path}: {exc}") from exc

    try:
        data: object = yaml.safe_load(raw_text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must contain a mapping.")

    config_dir = path.resolve().parent
    base_dir = data.get("base_dir")
    if base_dir is None:
        data["base_dir"] = str(config_dir)
    elif isinstance(base_dir, str) and not Path(base_dir).is_absolute():
        data["base_dir"] = str(config_dir / base_dir)
    try:
        config = LessonConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config {path}: {exc}") from exc
    logger.debug("Loaded lesson config %s", path)
    return config


def resolve_schema_path(
    config: LessonConfig | None = None,
    override: str | Path | None = None,
) -> Path | None:
    """Pick the XSD used for validation.

    Precedence: ``override`` (e.g. a CLI option), then ``config.schema_path``,
    then the ``AUMAI_EMLKIT_SCHEMA`` environment variable.
    """
    if override is not None:
        return Path(override)
    if config is not None and config.schema_path is not None:
        return config.resolve(config.schema_path)
    from_env = os.environ.get(SCHEMA_ENV_VAR)
    return Path(from_env) if from_env else None


__all__ = [
    "EXAMPLE_CONFIG",
    "EXAMPLE_DIR",
    "SCHEMA_ENV_VAR",
    "ConfigError",
    "CoverageConfig",
    "LessonConfig",
    "PersonEntry",
    "load_config",
    "resolve_schema_path",
]
