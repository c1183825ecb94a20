"""Shared test fixtures for aumai-emlkit."""

from __future__ import annotations

import os
import shutil
from datetime import date
from pathlib import Path

import pandas as pd
import pytest

from aumai_emlkit.config import EXAMPLE_DIR, SCHEMA_ENV_VAR, LessonConfig, load_config
from aumai_emlkit.core import load_table
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
    License,
    MeasurementScale,
    Methods,
    Party,
    PartyRole,
    Physical,
    TaxonomicClassification,
    TemporalCoverage,
    TextBlock,
)

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture()
def envelope_schema() -> Path:
    """Test XSD that checks the eml:eml envelope only."""
    return FIXTURES / "eml-envelope.xsd"


@pytest.fixture()
def dataset_schema() -> Path:
    """Test XSD with the EML 2.2.0 dataset content model and no wildcards."""
    return FIXTURES / "eml-2.2.0-dataset.xsd"


@pytest.fixture()
def official_schema() -> Path:
    """The official ``eml.xsd`` named by ``AUMAI_EMLKIT_SCHEMA``, when present."""
    value = os.environ.get(SCHEMA_ENV_VAR)
    if not value or not Path(value).is_file():
        pytest.skip(f"{SCHEMA_ENV_VAR} does not name the official eml.xsd")
    return Path(value)


@pytest.fixture()
def lesson_dir(tmp_path: Path) -> Path:
    """A writable copy of the bundled example lesson inputs."""
    target = tmp_path / "lesson"
    shutil.copytree(EXAMPLE_DIR, target)
    return target


@pytest.fixture()
def lesson_config(lesson_dir: Path) -> LessonConfig:
    return load_config(lesson_dir / "lesson.yaml")


@pytest.fixture()
def example_table() -> pd.DataFrame:
    return load_table(EXAMPLE_DIR / "pitcher_plants.csv")


@pytest.fixture()
def attribute_table() -> pd.DataFrame:
    return pd.read_csv(EXAMPLE_DIR / "attributes.csv", dtype=str)


@pytest.fixture()
def factor_table() -> pd.DataFrame:
    return pd.read_csv(EXAMPLE_DIR / "factors.csv", dtype=str)


@pytest.fixture()
def sample_document() -> EMLDocument:
    """A small but complete EML document built by hand."""
    attributes = [
        Attribute(
            name="plot",
            definition="Plot code",
            measurement_scale=MeasurementScale.nominal,
            domain=Domain.enumerated,
            codes=[
                CodeDefinition(code="A", definition="Upland plot"),
                CodeDefinition(code="B", definition="Lowland plot"),
            ],
        ),
        Attribute(
            name="mass",
            definition="Dry mass",
            measurement_scale=MeasurementScale.ratio,
            domain=Domain.numeric,
            unit="gram",
            number_type="real",
            minimum=0.0,
            maximum=12.5,
        ),
    ]
    table = DataTable(
        entity_name="plots.csv",
        entity_description="Plot masses",
        physical=Physical(object_name="plots.csv", size=42, checksum="abc123"),
        attributes=attributes,
        number_of_records=2,
    )
    dataset = Dataset(
        title="Plot masses",
        abstract=["Dry mass of two plots."],
        license=License(
            name="CC0 1.0 Universal",
            identifier="CC0-1.0",
            rights=["No rights reserved."],
        ),
        pub_date=date(2026, 1, 15),
        keyword_sets=[KeywordSet(keywords=["biomass"], thesaurus="LTER controlled vocabulary")],
        coverage=Coverage(
            geographic=GeographicCoverage(
                description="Test field", west=-72.5, east=-72.0, north=42.6, south=42.4
            ),
            temporal=TemporalCoverage(begin=date(2020, 5, 1), end=date(2020, 9, 30)),
            taxonomic=[TaxonomicClassification(rank_name="Genus", rank_value="Quercus")],
        ),
        creators=[Party(given_names=["Ada"], sur_name="Byron", email="ada@example.org")],
        contacts=[Party(role=PartyRole.contact, organization_name="Field Station")],
        methods=Methods(steps=[TextBlock(title="Weighing", paragraphs=["Samples were dried."])]),
        data_tables=[table],
    )
    return EMLDocument(package_id="urn:uuid:00000000-0000-4000-8000-000000000000", dataset=dataset)
