"""The EML lesson pipeline.

``run_lesson`` walks the lesson from raw inputs to a validated EML file:

1. load the example data table
2. load the metadata library (importing this package)
3. descriptive fields: title, abstract, license, publication date, keywords
4. parties parsed from person strings
5. methods from a markdown file
6. coverage computed from the data
7. attribute list from the attribute and factor side-tables
8. CSV export and its physical description
9. the data table entity
10. the dataset wrapped in an ``eml:eml`` envelope with a UUID package id
11. XML serialization and validation
"""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from aumai_emlkit.config import LessonConfig, PersonEntry, resolve_schema_path
from aumai_emlkit.core import (
    EMLBuildError,
    build_attributes,
    check_attributes,
    compute_coverage,
    describe_physical,
    export_table,
    load_methods,
    load_table,
    new_package_id,
    parse_person,
    raise_for_problems,
    read_text,
)
from aumai_emlkit.models import (
    DataTable,
    Dataset,
    EMLDocument,
    LessonResult,
    Party,
    PartyRole,
)
from aumai_emlkit.serializer import write_eml
from aumai_emlkit.validation import EMLValidator

logger = logging.getLogger(__name__)


def build_party(entry: PersonEntry, role: PartyRole) -> Party:
    """Parse ``entry.name`` and add the details a person string cannot hold."""
    party = parse_person(entry.name, role=role)
    extras = {
        "organization_name": entry.organization,
        "phone": entry.phone,
        "online_url": entry.online_url,
    }
    if entry.orcid:
        extras["user_id"] = entry.orcid
        extras["user_id_directory"] = "https://orcid.org"
    extras = {key: value for key, value in extras.items() if value is not None}
    if not extras:
        return party
    return Party.model_validate({**party.model_dump(), **extras})


def _read_side_table(path: Path) -> pd.DataFrame:
    try:
        return pd.read_csv(path, dtype=str)
    except OSError as exc:
        raise EMLBuildError(f"Cannot read side-table {path}: {exc}") from exc
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as exc:
        raise EMLBuildError(f"Cannot parse side-table {path}: {exc}") from exc


def build_document(
    config: LessonConfig,
    table: pd.DataFrame,
    data_path: Path,
    package_id: str,
) -> EMLDocument:
    """Assemble the EML document for ``table`` once it has been exported."""
    logger.info("Step 3: descriptive fields for '%s'", config.title)
    abstract = read_text(config.resolve(config.abstract_file))

    logger.info("Step 4: parties")
    creators = [build_party(entry, PartyRole.creator) for entry in config.creators]
    contacts = [build_party(entry, PartyRole.contact) for entry in config.contacts]
    providers = [
        build_party(entry, PartyRole.metadata_provider) for entry in config.metadata_providers
    ]
    associated = [
        build_party(entry, PartyRole.associated_party) for entry in config.associated_parties
    ]
    for party in [*creators, *contacts, *providers, *associated]:
        logger.info("  %s: %s", party.role.value, party.display_name)

    methods = None
    if config.methods_file is not None:
        logger.info("Step 5: methods from %s", config.methods_file)
        methods = load_methods(config.resolve(config.methods_file))

    logger.info("Step 6: coverage")
    coverage = compute_coverage(table, **config.coverage.model_dump())

    logger.info("Step 7: attributes from %s", config.attributes_file)
    attribute_table = _read_side_table(config.resolve(config.attributes_file))
    factor_table = None
    if config.factors_file is not None:
        factor_table = _read_side_table(config.resolve(config.factors_file))
    attributes = build_attributes(attribute_table, factor_table, config.column_classes)
    raise_for_problems(check_attributes(table, attributes))

    logger.info("Step 8: physical description of %s", data_path.name)
    physical = describe_physical(data_path, config.checksum_method, url=config.data_url)

    logger.info("Step 9: data table entity")
    data_table = DataTable(
        entity_name=config.entity_name or data_path.name,
        entity_description=config.entity_description,
        physical=physical,
        attributes=attributes,
        number_of_records=len(table),
    )

    logger.info("Step 10: dataset and envelope %s", package_id)
    dataset = Dataset(
        title=config.title,
        short_name=config.short_name,
        abstract=abstract,
        license=config.license,
        pub_date=config.pub_date,
        language=config.language,
        keyword_sets=config.keyword_sets,
        coverage=coverage,
        creators=creators,
        contacts=contacts,
        metadata_providers=providers,
        associated_parties=associated,
        methods=methods,
        data_tables=[data_table],
    )
    return EMLDocument(package_id=package_id, system="uuid", dataset=dataset)


def run_lesson(
    config: LessonConfig,
    package_id: str | None = None,
    schema_path: str | Path | None = None,
) -> LessonResult:
    """Run every lesson step and return where the outputs went.

    Args:
        config: The lesson configuration.
        package_id: Fixed package identifier; a new ``urn:uuid:`` is made
            when omitted.
        schema_path: XSD overriding the configured schema.

    Returns:
        A ``LessonResult`` carrying the validation report.
    """
    source_path = config.resolve(config.data_file)
    output_dir = config.resolve(config.output_dir)
    export_path = output_dir / (config.export_filename or config.data_file.name)
    if export_path.resolve() == source_path.resolve():
        raise EMLBuildError(
            f"Export path {export_path} is the source data file; "
            "set output_dir or export_filename to somewhere else."
        )

    logger.info("Step 1: loading data from %s", config.data_file)
    table = load_table(source_path)

    logger.info("Step 2: metadata library aumai_emlkit ready")
    data_path = export_table(table, export_path)

    document = build_document(config, table, data_path, package_id or new_package_id())

    logger.info("Step 11: serialize and validate")
    eml_path = write_eml(document, output_dir / config.eml_filename)
    validator = EMLValidator(resolve_schema_path(config, schema_path))
    report = validator.validate(eml_path)
    if report.valid:
        logger.info("EML document %s is valid", eml_path)
    else:
        logger.warning("EML document %s failed validation (%d errors)", eml_path, len(report.errors))

    return LessonResult(
        package_id=document.package_id,
        eml_path=str(eml_path),
        data_path=str(data_path),
        report=report,
    )


__all__ = [
    "build_document",
    "build_party",
    "run_lesson",
]
