"""Lesson: writing an EML record for a small ecological dataset.

This walkthrough builds Ecological Metadata Language (EML 2.2.0) metadata
for the pitcher plant example bundled with aumai-emlkit, one step at a time.
Every step prints what it built so you can follow along:

    python examples/lesson.py [OUTPUT_DIR] [--schema path/to/eml.xsd]

Download the official schema from https://eml.ecoinformatics.org to have
step 11 check the document against the full EML XSD. Without it the lesson
still checks well-formedness and the id/references rules.
"""

from __future__ import annotations

import argparse
import tempfile
from pathlib import Path

import pandas as pd

from aumai_emlkit import (
    DataTable,
    Dataset,
    EMLDocument,
    EMLValidator,
    KeywordSet,
    License,
    PartyRole,
    build_attributes,
    check_attributes,
    compute_checksum,
    compute_coverage,
    describe_physical,
    export_table,
    load_methods,
    load_table,
    new_package_id,
    parse_person,
    read_text,
    write_eml,
)
from aumai_emlkit.config import EXAMPLE_DIR


def banner(title: str) -> None:
    print("=" * 60)
    print(title)
    print("=" * 60)


def run(output_dir: Path, schema_path: Path | None) -> None:
    """Run the eleven lesson steps."""

    # -----------------------------------------------------------------------
    # Step 1: the data
    # -----------------------------------------------------------------------
    banner("Step 1: Load the example data")
    table = load_table(EXAMPLE_DIR / "pitcher_plants.csv")
    print(table.head())
    print(f"\n  {len(table)} rows, columns: {', '.join(table.columns)}\n")

    # -----------------------------------------------------------------------
    # Step 2: the metadata library
    # -----------------------------------------------------------------------
    banner("Step 2: Load the metadata library")
    # Everything below comes from ``aumai_emlkit``: pydantic models that mirror
    # the EML schema, builders that fill them from files, a serializer and a
    # validator.
    print("  import aumai_emlkit\n")

    # -----------------------------------------------------------------------
    # Step 3: descriptive fields
    # -----------------------------------------------------------------------
    banner("Step 3: Title, abstract, license, date and keywords")
    title = "Prey addition and growth of pitcher plants in three Harvard Forest bogs, 2012-2013"
    abstract = read_text(EXAMPLE_DIR / "abstract.txt")
    license_ = License(
        name="Creative Commons Attribution 4.0 International",
        url="https://spdx.org/licenses/CC-BY-4.0.html",
        identifier="CC-BY-4.0",
        rights=[
            "This work is licensed under a Creative Commons Attribution 4.0"
            " International License."
        ],
    )
    keyword_sets = [
        KeywordSet(
            keywords=["bogs", "carnivorous plants", "nutrients"],
            thesaurus="LTER controlled vocabulary",
        ),
        KeywordSet(keywords=["Sarracenia purpurea", "prey addition"]),
    ]
    print(f"  Title: {title}")
    print(f"  Abstract: {len(abstract)} paragraph(s)")
    print(f"  License: {license_.identifier}")
    print(f"  Keywords: {sum(len(k.keywords) for k in keyword_sets)} in {len(keyword_sets)} sets\n")

    # -----------------------------------------------------------------------
    # Step 4: people
    # -----------------------------------------------------------------------
    banner("Step 4: Creator and contact")
    # A person string carries a name, an email in <...> and optional role
    # codes in [...].
    creator = parse_person("Maria Reyes <maria.reyes@example.org>", role=PartyRole.creator)
    contact = parse_person("Maria Reyes <maria.reyes@example.org>", role=PartyRole.contact)
    helper = parse_person(
        "Tomas Lindqvist <tomas.lindqvist@example.org> [ctb]",
        role=PartyRole.associated_party,
    )
    print(f"  Creator: {creator.display_name} <{creator.email}>")
    print(f"  Associated party: {helper.display_name} ({helper.role_text})\n")

    # -----------------------------------------------------------------------
    # Step 5: methods
    # -----------------------------------------------------------------------
    banner("Step 5: Methods from a markdown file")
    methods = load_methods(EXAMPLE_DIR / "methods.md")
    for step in methods.steps:
        print(f"  - {step.title}: {len(step.paragraphs)} paragraph(s)")
    print()

    # -----------------------------------------------------------------------
    # Step 6: coverage
    # -----------------------------------------------------------------------
    banner("Step 6: Coverage computed from the data")
    coverage = compute_coverage(
        table,
        date_column="sample_date",
        taxon_column="species",
        latitude_column="latitude",
        longitude_column="longitude",
        geographic_description=(
            "Three ombrotrophic bogs at Harvard Forest, Petersham, Massachusetts, USA"
        ),
        altitude_minimum=300,
        altitude_maximum=350,
        altitude_units="meter",
    )
    geographic = coverage.geographic
    print(f"  Dates: {coverage.temporal.begin} to {coverage.temporal.end}")  # type: ignore[union-attr]
    print(f"  Taxa: {', '.join(t.children[0].rank_value for t in coverage.taxonomic)}")
    print(
        f"  Box: W {geographic.west} E {geographic.east}"  # type: ignore[union-attr]
        f" N {geographic.north} S {geographic.south}\n"  # type: ignore[union-attr]
    )

    # -----------------------------------------------------------------------
    # Step 7: attributes
    # -----------------------------------------------------------------------
    banner("Step 7: Attribute list from side-tables")
    attribute_table = pd.read_csv(EXAMPLE_DIR / "attributes.csv", dtype=str)
    factor_table = pd.read_csv(EXAMPLE_DIR / "factors.csv", dtype=str)
    attributes = build_attributes(attribute_table, factor_table)
    for attribute in attributes:
        extra = f" ({len(attribute.codes)} codes)" if attribute.codes else ""
        print(f"  {attribute.name}: {attribute.measurement_scale.value}{extra}")
    problems = check_attributes(table, attributes)
    print(f"  Problems against the data: {problems or 'none'}\n")

    # -----------------------------------------------------------------------
    # Step 8: the physical file
    # -----------------------------------------------------------------------
    banner("Step 8: Export the table and describe the file")
    data_path = export_table(table, output_dir / "pitcher_plants.csv")
    physical = describe_physical(data_path, checksum_method="MD5")
    print(f"  {physical.object_name}: {physical.size} bytes, MD5 {physical.checksum}")
    assert physical.checksum == compute_checksum(data_path, "MD5")
    print()

    # -----------------------------------------------------------------------
    # Step 9: the data table entity
    # -----------------------------------------------------------------------
    banner("Step 9: The dataTable entity")
    data_table = DataTable(
        entity_name="pitcher_plants.csv",
        entity_description="Plant measurements, one row per plant and visit",
        physical=physical,
        attributes=attributes,
        number_of_records=len(table),
    )
    print(f"  {data_table.entity_name}: {len(data_table.attributes)} attributes\n")

    # -----------------------------------------------------------------------
    # Step 10: dataset and envelope
    # -----------------------------------------------------------------------
    banner("Step 10: Dataset and the eml:eml envelope")
    dataset = Dataset(
        title=title,
        abstract=abstract,
        license=license_,
        pub_date="2026-10-01",
        keyword_sets=keyword_sets,
        coverage=coverage,
        creators=[creator],
        contacts=[contact],
        associated_parties=[helper],
        methods=methods,
        data_tables=[data_table],
    )
    document = EMLDocument(package_id=new_package_id(), system="uuid", dataset=dataset)
    print(f"  packageId: {document.package_id}\n")

    # -----------------------------------------------------------------------
    # Step 11: write and validate
    # -----------------------------------------------------------------------
    banner("Step 11: Write the XML and validate it")
    eml_path = write_eml(document, output_dir / "pitcher_plants_eml.xml")
    report = EMLValidator(schema_path).validate(eml_path)
    print(f"  Wrote {eml_path}")
    print(f"  Valid: {report.valid} (XSD checked: {report.schema_checked})")
    for error in report.errors:
        print(f"    - {error}")
    print()


def main() -> None:
    """Run the lesson into OUTPUT_DIR, or a temporary directory."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("output_dir", nargs="?", default=None)
    parser.add_argument("--schema", default=None, help="Path to the EML eml.xsd.")
    args = parser.parse_args()

    schema_path = Path(args.schema) if args.schema else None
    if args.output_dir:
        run(Path(args.output_dir), schema_path)
    else:
        with tempfile.TemporaryDirectory() as temp_dir:
            run(Path(temp_dir), schema_path)
    print("Lesson complete.")


if __name__ == "__main__":
    main()
