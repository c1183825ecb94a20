"""AumAI EMLkit: author Ecological Metadata Language records."""

from aumai_emlkit.config import ConfigError, LessonConfig, load_config
from aumai_emlkit.core import (
    EMLBuildError,
    build_attributes,
    check_attributes,
    compute_checksum,
    compute_coverage,
    compute_sha256,
    describe_physical,
    export_table,
    load_methods,
    load_table,
    new_package_id,
    parse_person,
    read_text,
)
from aumai_emlkit.lesson import run_lesson
from aumai_emlkit.models import (
    Attribute,
    CodeDefinition,
    Coverage,
    DataTable,
    Dataset,
    Domain,
    EMLDocument,
    GeographicCoverage,
    KeywordSet,
    LessonResult,
    License,
    MeasurementScale,
    Methods,
    Party,
    PartyRole,
    Physical,
    TemporalCoverage,
    ValidationReport,
)
from aumai_emlkit.serializer import to_xml, write_eml
from aumai_emlkit.validation import EMLValidator, validate_eml

__version__ = "0.1.0"

__all__ = [
    "Attribute",
    "CodeDefinition",
    "ConfigError",
    "Coverage",
    "DataTable",
    "Dataset",
    "Domain",
    "EMLBuildError",
    "EMLDocument",
    "EMLValidator",
    "GeographicCoverage",
    "KeywordSet",
    "LessonConfig",
    "LessonResult",
    "License",
    "MeasurementScale",
    "Methods",
    "Party",
    "PartyRole",
    "Physical",
    "TemporalCoverage",
    "ValidationReport",
    "build_attributes",
    "check_attributes",
    "compute_checksum",
    "compute_coverage",
    "compute_sha256",
    "describe_physical",
    "export_table",
    "load_config",
    "load_methods",
    "load_table",
    "new_package_id",
    "parse_person",
    "read_text",
    "run_lesson",
    "to_xml",
    "validate_eml",
    "write_eml",
]
