"""Pydantic models for aumai-emlkit.

Each model mirrors one EML 2.2.0 construct. Models are frozen: a record is
built once from lesson inputs and then only read by the serializer.
"""

from __future__ import annotations

import enum
from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class _EMLModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class PartyRole(str, enum.Enum):
    """Where a party is placed in the dataset."""

    creator = "creator"
    contact = "contact"
    metadata_provider = "metadataProvider"
    associated_party = "associatedParty"


class Address(_EMLModel):
    """Postal address of a party."""

    delivery_points: list[str] = Field(default_factory=list)
    city: str | None = None
    administrative_area: str | None = None
    postal_code: str | None = None
    country: str | None = None


class Party(_EMLModel):
    """A person, organization or position responsible for the dataset."""

    role: PartyRole = Field(default=PartyRole.creator, description="Placement in the dataset.")
    given_names: list[str] = Field(default_factory=list, description="First and middle names.")
    sur_name: str | None = Field(default=None, description="Family name.")
    organization_name: str | None = None
    position_name: str | None = None
    address: Address | None = None
    phone: str | None = None
    email: str | None = Field(default=None, description="Electronic mail address.")
    online_url: str | None = None
    user_id: str | None = Field(default=None, description="Directory identifier, e.g. an ORCID.")
    user_id_directory: str | None = None
    role_text: str | None = Field(
        default=None,
        description="Free-text role, required for associated parties.",
    )

    @model_validator(mode="after")
    def _check_name(self) -> Party:
        if self.given_names and not self.sur_name:
            raise ValueError("given_names require a sur_name")
        if not (self.sur_name or self.organization_name or self.position_name):
            raise ValueError(
                "party needs one of sur_name, organization_name or position_name"
            )
        if self.role == PartyRole.associated_party and not self.role_text:
            raise ValueError("associated parties need a role_text")
        return self

    @property
    def display_name(self) -> str:
        if self.sur_name:
            return " ".join([*self.given_names, self.sur_name])
        return self.organization_name or self.position_name or ""


class KeywordSet(_EMLModel):
    """Keywords, optionally drawn from a controlled vocabulary."""

    keywords: list[str] = Field(..., min_length=1)
    thesaurus: str | None = Field(default=None, description="Name of the controlled vocabulary.")


class License(_EMLModel):
    """Intellectual rights statement plus a machine-readable license."""

    name: str = Field(..., description="License name, e.g. 'Creative Commons Attribution 4.0'.")
    url: str | None = None
    identifier: str | None = Field(default=None, description="SPDX identifier.")
    rights: list[str] = Field(
        default_factory=list,
        description="Paragraphs of the intellectualRights statement.",
    )


class TextBlock(_EMLModel):
    """A titled or untitled run of paragraphs."""

    title: str | None = None
    paragraphs: list[str] = Field(..., min_length=1)


class Methods(_EMLModel):
    """Ordered method steps."""

    steps: list[TextBlock] = Field(..., min_length=1)


class TemporalCoverage(_EMLModel):
    begin: date
    end: date

    @model_validator(mode="after")
    def _check_order(self) -> TemporalCoverage:
        if self.begin > self.end:
            raise ValueError(f"begin {self.begin} is after end {self.end}")
        return self


class GeographicCoverage(_EMLModel):
    """Bounding box in decimal degrees with an optional altitude range."""

    description: str = Field(..., min_length=1)
    west: float = Field(..., ge=-180, le=180)
    east: float = Field(..., ge=-180, le=180)
    north: float = Field(..., ge=-90, le=90)
    south: float = Field(..., ge=-90, le=90)
    altitude_minimum: float | None = None
    altitude_maximum: float | None = None
    altitude_units: str | None = None

    @model_validator(mode="after")
    def _check_bounds(self) -> GeographicCoverage:
        if self.south > self.north:
            raise ValueError(f"south {self.south} is north of north {self.north}")
        altitudes = (self.altitude_minimum, self.altitude_maximum, self.altitude_units)
        if any(value is not None for value in altitudes):
            if any(value is None for value in altitudes):
                raise ValueError("altitude bounds need minimum, maximum and units together")
            if self.altitude_minimum > self.altitude_maximum:  # type: ignore[operator]
                raise ValueError("altitude_minimum exceeds altitude_maximum")
        return self


class TaxonomicClassification(_EMLModel):
    rank_name: str | None = None
    rank_value: str = Field(..., min_length=1)
    common_names: list[str] = Field(default_factory=list)
    children: list[TaxonomicClassification] = Field(default_factory=list)


class Coverage(_EMLModel):
    geographic: GeographicCoverage | None = None
    temporal: TemporalCoverage | None = None
    taxonomic: list[TaxonomicClassification] = Field(default_factory=list)


class MeasurementScale(str, enum.Enum):
    nominal = "nominal"
    ordinal = "ordinal"
    interval = "interval"
    ratio = "ratio"
    date_time = "dateTime"


class Domain(str, enum.Enum):
    text = "textDomain"
    enumerated = "enumeratedDomain"
    numeric = "numericDomain"
    date_time = "dateTimeDomain"


_SCALE_DOMAINS: dict[MeasurementScale, set[Domain]] = {
    MeasurementScale.nominal: {Domain.text, Domain.enumerated},
    MeasurementScale.ordinal: {Domain.text, Domain.enumerated},
    MeasurementScale.interval: {Domain.numeric},
    MeasurementScale.ratio: {Domain.numeric},
    MeasurementScale.date_time: {Domain.date_time},
}


class CodeDefinition(_EMLModel):
    code: str = Field(..., min_length=1)
    definition: str = Field(..., min_length=1)


class MissingValueCode(_EMLModel):
    code: str = Field(..., min_length=1)
    explanation: str = Field(..., min_length=1)


class Attribute(_EMLModel):
    """Description of a single column of a tabular entity."""

    name: str = Field(..., min_length=1, description="Column name as it appears in the file.")
    definition: str = Field(..., min_length=1)
    label: str | None = None
    storage_type: str | None = None
    measurement_scale: MeasurementScale
    domain: Domain
    text_definition: str | None = Field(
        default=None,
        description="Definition of allowed text for textDomain attributes.",
    )
    codes: list[CodeDefinition] = Field(default_factory=list)
    unit: str | None = Field(default=None, description="EML standard unit name.")
    custom_unit: bool = Field(
        default=False,
        description="Write the unit as customUnit instead of standardUnit.",
    )
    number_type: str | None = Field(default=None, description="natural, whole, integer or real.")
    minimum: float | None = None
    maximum: float | None = None
    format_string: str | None = Field(default=None, description="dateTime format, e.g. YYYY-MM-DD.")
    date_time_precision: str | None = None
    missing_value_codes: list[MissingValueCode] = Field(default_factory=list)

    @field_validator("number_type")
    @classmethod
    def _check_number_type(cls, value: str | None) -> str | None:
        if value is not None and value not in {"natural", "whole", "integer", "real"}:
            raise ValueError(f"unknown numberType '{value}'")
        return value

    @model_validator(mode="after")
    def _check_domain(self) -> Attribute:
        if self.domain not in _SCALE_DOMAINS[self.measurement_scale]:
            raise ValueError(
                f"{self.name}: domain {self.domain.value} does not fit"
                f" measurementScale {self.measurement_scale.value}"
            )
        if self.domain == Domain.enumerated:
            if not self.codes:
                raise ValueError(f"{self.name}: enumeratedDomain needs at least one code")
            codes = [code.code for code in self.codes]
            if len(codes) != len(set(codes)):
                raise ValueError(f"{self.name}: duplicate codes in enumeratedDomain")
        if self.domain == Domain.numeric:
            if not self.unit or not self.number_type:
                raise ValueError(f"{self.name}: numeric attributes need a unit and a numberType")
            if (
                self.minimum is not None
                and self.maximum is not None
                and self.minimum > self.maximum
            ):
                raise ValueError(f"{self.name}: minimum exceeds maximum")
        if self.domain == Domain.date_time and not self.format_string:
            raise ValueError(f"{self.name}: dateTime attributes need a format_string")
        return self


class TextFormat(_EMLModel):
    num_header_lines: int = Field(default=1, ge=0)
    record_delimiter: str = "\\n"
    attribute_orientation: str = "column"
    field_delimiter: str = ","
    quote_character: str | None = '"'


class Physical(_EMLModel):
    """Storage description of a data file."""

    object_name: str = Field(..., min_length=1, description="File name.")
    size: int = Field(..., ge=0, description="File size in bytes.")
    checksum: str = Field(..., min_length=1, description="Hex digest of the file.")
    checksum_method: str = Field(default="MD5", description="Digest algorithm name.")
    character_encoding: str | None = "UTF-8"
    text_format: TextFormat = Field(default_factory=TextFormat)
    url: str | None = Field(default=None, description="Download location, if published.")


class DataTable(_EMLModel):
    """A tabular entity: one CSV file and its column descriptions."""

    entity_name: str = Field(..., min_length=1)
    entity_description: str | None = None
    physical: Physical
    attributes: list[Attribute] = Field(..., min_length=1)
    number_of_records: int | None = Field(default=None, ge=0)

    @field_validator("attributes")
    @classmethod
    def _unique_names(cls, value: list[Attribute]) -> list[Attribute]:
        names = [attribute.name for attribute in value]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"duplicate attribute names: {', '.join(duplicates)}")
        return value


class Dataset(_EMLModel):
    """The dataset descriptor."""

    title: str = Field(..., min_length=1)
    short_name: str | None = None
    abstract: list[str] = Field(..., min_length=1, description="Abstract paragraphs.")
    license: License | None = None
    pub_date: date | None = None
    language: str | None = "en"
    keyword_sets: list[KeywordSet] = Field(default_factory=list)
    coverage: Coverage | None = None
    creators: list[Party] = Field(..., min_length=1)
    contacts: list[Party] = Field(..., min_length=1)
    metadata_providers: list[Party] = Field(default_factory=list)
    associated_parties: list[Party] = Field(default_factory=list)
    methods: Methods | None = None
    data_tables: list[DataTable] = Field(default_factory=list)


class EMLDocument(_EMLModel):
    """The root metadata envelope."""

    package_id: str = Field(..., description="Globally unique package identifier.")
    system: str = Field(default="uuid", description="Identifier scheme of package_id.")
    dataset: Dataset

    @field_validator("package_id", "system")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class ValidationReport(BaseModel):
    """Outcome of validating one EML document."""

    valid: bool = Field(..., description="Whether the document passed every check.")
    errors: list[str] = Field(default_factory=list, description="Diagnostic messages.")
    schema_checked: bool = Field(
        default=False,
        description="Whether XSD validation ran against an EML schema.",
    )
    schema_path: str | None = None


class LessonResult(BaseModel):
    """Result of running the lesson pipeline end to end."""

    package_id: str
    eml_path: str = Field(..., description="Path of the written EML document.")
    data_path: str = Field(..., description="Path of the exported data table.")
    report: ValidationReport


__all__ = [
    "Address",
    "Attribute",
    "CodeDefinition",
    "Coverage",
    "DataTable",
    "Dataset",
    "Domain",
    "EMLDocument",
    "GeographicCoverage",
    "KeywordSet",
    "LessonResult",
    "License",
    "MeasurementScale",
    "Methods",
    "MissingValueCode",
    "Party",
    "PartyRole",
    "Physical",
    "TaxonomicClassification",
    "TemporalCoverage",
    "TextBlock",
    "TextFormat",
    "ValidationReport",
]
