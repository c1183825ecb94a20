"""Tests for aumai-emlkit core builders."""

from __future__ import annotations

import hashlib
import re
from datetime import date
from pathlib import Path

import pandas as pd
import pytest

from aumai_emlkit.core import (
    EMLBuildError,
    attribute_template,
    build_attributes,
    check_attributes,
    compute_checksum,
    compute_coverage,
    compute_sha256,
    describe_physical,
    export_table,
    infer_column_classes,
    load_methods,
    load_table,
    new_package_id,
    parse_person,
    raise_for_problems,
    read_text,
    taxon_classification,
)
from aumai_emlkit.models import Domain, MeasurementScale, PartyRole

# ---------------------------------------------------------------------------
# Text inputs
# ---------------------------------------------------------------------------


class TestReadText:
    def test_paragraphs_split_on_blank_lines(self, tmp_path: Path) -> None:
        path = tmp_path / "abstract.txt"
        path.write_text("First line\ncontinues.\n\n\nSecond paragraph.\n", encoding="utf-8")
        assert read_text(path) == ["First line continues.", "Second paragraph."]

    def test_empty_file_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.txt"
        path.write_text("  \n\n", encoding="utf-8")
        with pytest.raises(EMLBuildError, match="no text"):
            read_text(path)

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(EMLBuildError, match="Cannot read"):
            read_text(tmp_path / "missing.txt")


class TestLoadMethods:
    def test_headings_open_steps(self, tmp_path: Path) -> None:
        path = tmp_path / "methods.md"
        path.write_text(
            "Intro text.\n\n# Sampling\n\nWe sampled.\nTwice.\n\nThen rested.\n\n## Lab\nWeighed.\n",
            encoding="utf-8",
        )
        methods = load_methods(path)
        assert [step.title for step in methods.steps] == [None, "Sampling", "Lab"]
        assert methods.steps[1].paragraphs == ["We sampled. Twice.", "Then rested."]
        assert methods.steps[2].paragraphs == ["Weighed."]

    def test_heading_without_text_is_skipped(self, tmp_path: Path) -> None:
        path = tmp_path / "methods.md"
        path.write_text("# Empty\n\n# Real\nText.\n", encoding="utf-8")
        methods = load_methods(path)
        assert [step.title for step in methods.steps] == ["Real"]

    def test_no_text_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "methods.md"
        path.write_text("# Only a heading\n", encoding="utf-8")
        with pytest.raises(EMLBuildError):
            load_methods(path)


# ---------------------------------------------------------------------------
# Parties
# ---------------------------------------------------------------------------


class TestParsePerson:
    def test_name_and_email(self) -> None:
        party = parse_person("Aaron Ellison <fakeaddress@email.com>")
        assert party.given_names == ["Aaron"]
        assert party.sur_name == "Ellison"
        assert party.email == "fakeaddress@email.com"
        assert party.role == PartyRole.creator

    def test_middle_names(self) -> None:
        party = parse_person("Maria Luisa Reyes")
        assert party.given_names == ["Maria", "Luisa"]
        assert party.sur_name == "Reyes"
        assert party.email is None

    def test_single_token_is_surname(self) -> None:
        party = parse_person("Linnaeus")
        assert party.given_names == []
        assert party.sur_name == "Linnaeus"

    def test_role_codes(self) -> None:
        party = parse_person(
            "Tomas Lindqvist <t@example.org> [ctb, fnd]", role=PartyRole.associated_party
        )
        assert party.role == PartyRole.associated_party
        assert party.role_text == "contributor, funder"

    def test_unknown_role_code_kept(self) -> None:
        party = parse_person("Ann Lee [xyz]")
        assert party.role_text == "xyz"

    def test_associated_party_without_role_raises(self) -> None:
        with pytest.raises(EMLBuildError):
            parse_person("Ann Lee", role=PartyRole.associated_party)

    @pytest.mark.parametrize("text", ["", "   ", "<only@email.org>"])
    def test_no_name_raises(self, text: str) -> None:
        with pytest.raises(EMLBuildError):
            parse_person(text)


# ---------------------------------------------------------------------------
# Coverage
# ---------------------------------------------------------------------------


class TestCoverage:
    def test_example_coverage(self, example_table: pd.DataFrame) -> None:
        coverage = compute_coverage(
            example_table,
            date_column="sample_date",
            taxon_column="species",
            latitude_column="latitude",
            longitude_column="longitude",
            geographic_description="Harvard Forest bogs",
        )
        assert coverage.temporal is not None
        assert coverage.temporal.begin == date(2012, 6, 1)
        assert coverage.temporal.end == date(2013, 9, 30)

        assert [taxon.rank_value for taxon in coverage.taxonomic] == ["Drosera", "Sarracenia"]
        species = [taxon.children[0].rank_value for taxon in coverage.taxonomic]
        assert species == ["Drosera rotundifolia", "Sarracenia purpurea"]

        geographic = coverage.geographic
        assert geographic is not None
        assert geographic.west == pytest.approx(-72.2052)
        assert geographic.east == pytest.approx(-72.1765)
        assert geographic.north == pytest.approx(42.5412)
        assert geographic.south == pytest.approx(42.4987)

    def test_partial_coverage(self, example_table: pd.DataFrame) -> None:
        coverage = compute_coverage(example_table, date_column="sample_date")
        assert coverage.geographic is None
        assert coverage.taxonomic == []

    def test_missing_column(self, example_table: pd.DataFrame) -> None:
        with pytest.raises(EMLBuildError, match="not found"):
            compute_coverage(example_table, date_column="when")

    def test_bad_dates(self) -> None:
        table = pd.DataFrame({"day": ["2020-01-01", "not a date"]})
        with pytest.raises(EMLBuildError, match="unparseable"):
            compute_coverage(table, date_column="day")

    def test_bounding_box_needs_description(self, example_table: pd.DataFrame) -> None:
        with pytest.raises(EMLBuildError, match="geographic description"):
            compute_coverage(example_table, latitude_column="latitude", longitude_column="longitude")

    def test_bounding_box_needs_both_columns(self, example_table: pd.DataFrame) -> None:
        with pytest.raises(EMLBuildError, match="Both"):
            compute_coverage(
                example_table, latitude_column="latitude", geographic_description="x"
            )

    def test_out_of_range_latitude(self) -> None:
        table = pd.DataFrame({"lat": [95.0], "lon": [10.0]})
        with pytest.raises(EMLBuildError, match="Invalid geographic coverage"):
            compute_coverage(
                table, latitude_column="lat", longitude_column="lon", geographic_description="x"
            )

    def test_taxon_classification_ranks(self) -> None:
        genus = taxon_classification("Quercus")
        assert genus.rank_name == "Genus"
        assert genus.children == []

        subspecies = taxon_classification("Sarracenia purpurea venosa")
        species = subspecies.children[0]
        assert species.rank_value == "Sarracenia purpurea"
        assert species.children[0].rank_value == "Sarracenia purpurea venosa"


# ---------------------------------------------------------------------------
# Attributes
# ---------------------------------------------------------------------------


class TestBuildAttributes:
    def test_example_side_tables(
        self, attribute_table: pd.DataFrame, factor_table: pd.DataFrame
    ) -> None:
        attributes = build_attributes(attribute_table, factor_table)
        by_name = {attribute.name: attribute for attribute in attributes}
        assert list(by_name) == [
            "sample_date",
            "site",
            "species",
            "latitude",
            "longitude",
            "treatment",
            "plant_height",
            "pitchers",
        ]

        assert by_name["sample_date"].measurement_scale == MeasurementScale.date_time
        assert by_name["sample_date"].format_string == "YYYY-MM-DD"

        assert by_name["site"].domain == Domain.enumerated
        assert [code.code for code in by_name["site"].codes] == ["HF-A", "HF-B", "HF-C"]

        assert by_name["species"].domain == Domain.text
        assert by_name["species"].text_definition == "Binomial scientific name"

        assert by_name["latitude"].number_type == "real"
        assert by_name["latitude"].unit == "degree"
        assert by_name["latitude"].minimum == -90

        assert by_name["pitchers"].number_type == "integer"
        assert by_name["pitchers"].missing_value_codes[0].code == "NA"

    def test_explicit_scale_overrides_class(self) -> None:
        table = pd.DataFrame(
            [
                {
                    "attributeName": "grade",
                    "attributeDefinition": "Grade",
                    "columnClasses": "character",
                    "measurementScale": "ordinal",
                }
            ]
        )
        attribute = build_attributes(table)[0]
        assert attribute.measurement_scale == MeasurementScale.ordinal
        assert attribute.domain == Domain.text
        assert attribute.text_definition == "Grade"

    def test_column_classes_argument(self) -> None:
        table = pd.DataFrame(
            [{"attributeName": "n", "attributeDefinition": "Count", "unit": "number"}]
        )
        attribute = build_attributes(table, column_classes={"n": "integer"})[0]
        assert attribute.domain == Domain.numeric
        assert attribute.number_type == "integer"

    def test_custom_unit(self) -> None:
        table = pd.DataFrame(
            [
                {
                    "attributeName": "rate",
                    "attributeDefinition": "Capture rate",
                    "columnClasses": "numeric",
                    "unit": "preyPerPitcherPerDay",
                    "unitType": "custom",
                }
            ]
        )
        assert build_attributes(table)[0].custom_unit is True

    def test_factor_without_codes_fails(self) -> None:
        table = pd.DataFrame(
            [{"attributeName": "site", "attributeDefinition": "Site", "columnClasses": "factor"}]
        )
        with pytest.raises(EMLBuildError, match="site"):
            build_attributes(table)

    def test_factor_for_unknown_attribute(self, attribute_table: pd.DataFrame) -> None:
        factors = pd.DataFrame(
            [
                {"attributeName": "site", "code": "HF-A", "definition": "a"},
                {"attributeName": "treatment", "code": "low", "definition": "b"},
                {"attributeName": "colour", "code": "red", "definition": "c"},
            ]
        )
        with pytest.raises(EMLBuildError, match="colour"):
            build_attributes(attribute_table, factors)

    def test_codes_on_text_domain_fail(self) -> None:
        table = pd.DataFrame(
            [{"attributeName": "site", "attributeDefinition": "Site", "columnClasses": "character"}]
        )
        factors = pd.DataFrame(
            [{"attributeName": "site", "code": "HF-A", "definition": "Tom Swamp bog"}]
        )
        with pytest.raises(EMLBuildError, match="factor codes given but domain is textDomain"):
            build_attributes(table, factors)

    def test_codes_on_explicit_text_domain_fail(self) -> None:
        table = pd.DataFrame(
            [
                {
                    "attributeName": "site",
                    "attributeDefinition": "Site",
                    "measurementScale": "nominal",
                    "domain": "textDomain",
                }
            ]
        )
        factors = pd.DataFrame(
            [{"attributeName": "site", "code": "HF-A", "definition": "Tom Swamp bog"}]
        )
        with pytest.raises(EMLBuildError, match="site"):
            build_attributes(table, factors)

    def test_unknown_column_class(self) -> None:
        table = pd.DataFrame(
            [{"attributeName": "x", "attributeDefinition": "X", "columnClasses": "blob"}]
        )
        with pytest.raises(EMLBuildError, match="unknown column class"):
            build_attributes(table)

    def test_missing_scale(self) -> None:
        table = pd.DataFrame([{"attributeName": "x", "attributeDefinition": "X"}])
        with pytest.raises(EMLBuildError, match="measurementScale"):
            build_attributes(table)

    def test_missing_required_columns(self) -> None:
        with pytest.raises(EMLBuildError, match="attributeDefinition"):
            build_attributes(pd.DataFrame({"attributeName": ["x"]}))

    def test_non_numeric_bound(self) -> None:
        table = pd.DataFrame(
            [
                {
                    "attributeName": "x",
                    "attributeDefinition": "X",
                    "columnClasses": "numeric",
                    "unit": "meter",
                    "minimum": "low",
                }
            ]
        )
        with pytest.raises(EMLBuildError, match="not a number"):
            build_attributes(table)


class TestCheckAttributes:
    def test_example_matches(
        self,
        example_table: pd.DataFrame,
        attribute_table: pd.DataFrame,
        factor_table: pd.DataFrame,
    ) -> None:
        attributes = build_attributes(attribute_table, factor_table)
        assert check_attributes(example_table, attributes) == []
        assert len(attributes) == len(example_table.columns)

    def test_categorical_codes_match_data(
        self,
        example_table: pd.DataFrame,
        attribute_table: pd.DataFrame,
        factor_table: pd.DataFrame,
    ) -> None:
        attributes = build_attributes(attribute_table, factor_table)
        for attribute in attributes:
            if attribute.domain == Domain.enumerated:
                codes = {code.code for code in attribute.codes}
                assert codes == set(example_table[attribute.name].dropna())

    def test_undescribed_column(
        self,
        example_table: pd.DataFrame,
        attribute_table: pd.DataFrame,
        factor_table: pd.DataFrame,
    ) -> None:
        attributes = build_attributes(attribute_table, factor_table)
        problems = check_attributes(example_table.assign(extra=1), attributes)
        assert any("'extra' has no attribute description" in p for p in problems)

    def test_attribute_without_column(
        self,
        example_table: pd.DataFrame,
        attribute_table: pd.DataFrame,
        factor_table: pd.DataFrame,
    ) -> None:
        attributes = build_attributes(attribute_table, factor_table)
        problems = check_attributes(example_table.drop(columns=["pitchers"]), attributes)
        assert any("'pitchers' does not match any column" in p for p in problems)

    def test_column_order(
        self,
        example_table: pd.DataFrame,
        attribute_table: pd.DataFrame,
        factor_table: pd.DataFrame,
    ) -> None:
        attributes = build_attributes(attribute_table, factor_table)
        reordered = example_table[list(reversed(example_table.columns))]
        assert check_attributes(reordered, attributes) == [
            "Attribute order does not match column order."
        ]

    def test_undocumented_and_unused_codes(
        self,
        example_table: pd.DataFrame,
        attribute_table: pd.DataFrame,
        factor_table: pd.DataFrame,
    ) -> None:
        attributes = build_attributes(attribute_table, factor_table)
        table = example_table.copy()
        table["treatment"] = table["treatment"].replace({"high": "extreme"})
        problems = check_attributes(table, attributes)
        assert any("without a code definition: extreme" in p for p in problems)
        assert any("codes not present in the data: high" in p for p in problems)
        with pytest.raises(EMLBuildError, match="extreme"):
            raise_for_problems(problems)

    def test_raise_for_no_problems(self) -> None:
        raise_for_problems([])


class TestTemplate:
    def test_infer_column_classes(self, example_table: pd.DataFrame) -> None:
        assert infer_column_classes(example_table) == {
            "sample_date": "Date",
            "site": "factor",
            "species": "factor",
            "latitude": "numeric",
            "longitude": "numeric",
            "treatment": "factor",
            "plant_height": "numeric",
            "pitchers": "integer",
        }

    def test_free_text_is_character(self) -> None:
        table = pd.DataFrame({"note": [f"note {i}" for i in range(20)]})
        assert infer_column_classes(table) == {"note": "character"}

    def test_attribute_template(self, example_table: pd.DataFrame) -> None:
        template = attribute_template(example_table)
        assert list(template["attributeName"]) == list(example_table.columns)
        row = template.set_index("attributeName").loc["sample_date"]
        assert row["formatString"] == "YYYY-MM-DD"


# ---------------------------------------------------------------------------
# Files, checksums and identifiers
# ---------------------------------------------------------------------------


class TestPhysical:
    def test_load_missing_table(self, tmp_path: Path) -> None:
        with pytest.raises(EMLBuildError, match="not found"):
            load_table(tmp_path / "nope.csv")

    def test_load_empty_table(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")
        with pytest.raises(EMLBuildError, match="Cannot parse data file"):
            load_table(path)

    def test_load_ragged_table(self, tmp_path: Path) -> None:
        path = tmp_path / "ragged.csv"
        path.write_text("a,b\n1,2\n3,4,5,6\n", encoding="utf-8")
        with pytest.raises(EMLBuildError, match="Cannot parse data file"):
            load_table(path)

    def test_export_round_trip(self, example_table: pd.DataFrame, tmp_path: Path) -> None:
        path = export_table(example_table, tmp_path / "out" / "data.csv")
        raw = path.read_bytes()
        assert b"\r\n" not in raw
        assert raw.splitlines()[0] == b"sample_date,site,species,latitude,longitude,treatment,plant_height,pitchers"
        assert b",NA\n" in raw
        reloaded = load_table(path)
        assert len(reloaded) == len(example_table)

    def test_checksums_match_hashlib(self, tmp_path: Path) -> None:
        path = tmp_path / "data.bin"
        payload = b"pitcher plants\n" * 10000
        path.write_bytes(payload)
        assert compute_checksum(path) == hashlib.md5(payload).hexdigest()
        assert compute_checksum(path, "sha-1") == hashlib.sha1(payload).hexdigest()
        assert compute_sha256(path) == hashlib.sha256(payload).hexdigest()

    def test_unsupported_method(self, tmp_path: Path) -> None:
        path = tmp_path / "data.bin"
        path.write_bytes(b"x")
        with pytest.raises(EMLBuildError, match="Unsupported checksum method"):
            compute_checksum(path, "CRC32")

    def test_describe_physical(self, example_table: pd.DataFrame, tmp_path: Path) -> None:
        path = export_table(example_table, tmp_path / "data.csv")
        physical = describe_physical(path, checksum_method="sha256")
        assert physical.object_name == "data.csv"
        assert physical.size == len(path.read_bytes())
        assert physical.checksum == hashlib.sha256(path.read_bytes()).hexdigest()
        assert physical.checksum_method == "SHA-256"

    def test_describe_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(EMLBuildError):
            describe_physical(tmp_path / "missing.csv")


class TestPackageId:
    def test_format(self) -> None:
        package_id = new_package_id()
        assert re.fullmatch(
            r"urn:uuid:[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}",
            package_id,
        )

    def test_unique(self) -> None:
        assert len({new_package_id() for _ in range(100)}) == 100
