"""CLI entry point for aumai-emlkit."""

from __future__ import annotations

import logging
import shutil
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from aumai_emlkit.config import EXAMPLE_DIR, ConfigError, load_config, resolve_schema_path
from aumai_emlkit.core import (
    EMLBuildError,
    attribute_template,
    compute_checksum,
    load_table,
)
from aumai_emlkit.lesson import run_lesson
from aumai_emlkit.models import ValidationReport
from aumai_emlkit.validation import EMLValidator


def _print_report(report: ValidationReport) -> None:
    if report.valid:
        suffix = "" if report.schema_checked else " (no EML schema configured; XSD check skipped)"
        click.echo(f"Validation passed{suffix}.")
        return
    click.echo(f"Validation failed with {len(report.errors)} error(s):")
    for error in report.errors:
        click.echo(f"  - {error}")


@click.group()
@click.version_option(package_name="aumai-emlkit")
@click.option("--verbose", "-v", is_flag=True, help="Log every lesson step.")
def main(verbose: bool) -> None:
    """AumAI EMLkit: author Ecological Metadata Language records."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


@main.command("build")
@click.option(
    "--config",
    "config_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Path to a YAML lesson config.",
)
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory for the exported table and EML file.",
)
@click.option(
    "--schema",
    "schema_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="EML XSD (eml.xsd) to validate against.",
)
@click.option("--package-id", default=None, help="Use this package id instead of a new UUID.")
def build_command(
    config_path: str,
    output_dir: str | None,
    schema_path: str | None,
    package_id: str | None,
) -> None:
    """Build, write and validate an EML document from a lesson config.

    Example: aumai-emlkit build --config lesson.yaml --schema eml-2.2.0/eml.xsd
    """
    try:
        config = load_config(config_path)
        if output_dir is not None:
            config = config.model_copy(update={"output_dir": Path(output_dir).resolve()})
        result = run_lesson(config, package_id=package_id, schema_path=schema_path)
    except (ConfigError, EMLBuildError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    except ValidationError as exc:
        click.echo(f"Error: invalid metadata: {exc}", err=True)
        sys.exit(1)
    except OSError as exc:
        click.echo(f"Error: cannot write outputs: {exc}", err=True)
        sys.exit(1)

    click.echo(f"Data table: {result.data_path}")
    click.echo(f"EML document: {result.eml_path}")
    click.echo(f"Package id: {result.package_id}")
    _print_report(result.report)
    if not result.report.valid:
        sys.exit(1)


@main.command("validate")
@click.argument("eml_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--schema",
    "schema_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="EML XSD (eml.xsd) to validate against.",
)
def validate_command(eml_path: str, schema_path: str | None) -> None:
    """Validate an EML document.

    Example: aumai-emlkit validate output/eml.xml --schema eml-2.2.0/eml.xsd
    """
    report = EMLValidator(resolve_schema_path(override=schema_path)).validate(eml_path)
    _print_report(report)
    if not report.valid:
        sys.exit(1)


@main.command("checksum")
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--method",
    type=click.Choice(["MD5", "SHA-1", "SHA-256"], case_sensitive=False),
    default="MD5",
    show_default=True,
    help="Digest algorithm.",
)
def checksum_command(file_path: str, method: str) -> None:
    """Print the size and checksum EML records for a file.

    Example: aumai-emlkit checksum data.csv --method SHA-256
    """
    size = Path(file_path).stat().st_size
    click.echo(f"{compute_checksum(file_path, method)}  {size} bytes  {Path(file_path).name}")


@main.command("attributes")
@click.argument("data_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output",
    "output_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write the template here instead of standard output.",
)
def attributes_command(data_path: str, output_path: str | None) -> None:
    """Print an attribute side-table template for a CSV data file.

    Example: aumai-emlkit attributes data.csv --output attributes.csv
    """
    try:
        template = attribute_template(load_table(data_path))
    except EMLBuildError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if output_path is None:
        click.echo(template.to_csv(index=False, lineterminator="\n"), nl=False)
    else:
        template.to_csv(output_path, index=False, lineterminator="\n")
        click.echo(f"Attribute template written to {output_path}.")


@main.command("example")
@click.argument("target_dir", type=click.Path(file_okay=False))
def example_command(target_dir: str) -> None:
    """Copy the example lesson inputs into TARGET_DIR.

    Example: aumai-emlkit example lesson && aumai-emlkit build --config lesson/lesson.yaml
    """
    target = Path(target_dir)
    target.mkdir(parents=True, exist_ok=True)
    for source in sorted(EXAMPLE_DIR.iterdir()):
        if source.is_file():
            shutil.copy2(source, target / source.name)
            click.echo(f"  {target / source.name}")
    click.echo(f"Example lesson copied to {target}.")


if __name__ == "__main__":
    main()
