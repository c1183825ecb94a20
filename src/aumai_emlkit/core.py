"""Core builders for aumai-emlkit.

Each function turns one lesson input (a table, a text file, a person
string, a side-table) into the matching EML model.
"""

from __future__ import annotations

import hashlib
import logging
import re
import uuid
from collections.abc import Iterable
from pathlib import Path

import pandas as pd
from pydantic import ValidationError

from aumai_emlkit.models import (
    Attribute,
    CodeDefinition,
    Coverage,
    Domain,
    GeographicCoverage,
    MeasurementScale,
    Methods,
    MissingValueCode,
    Party,
    PartyRole,
    Physical,
    TaxonomicClassification,
    TemporalCoverage,
    TextBlock,
    TextFormat,
)

logger = logging.getLogger(__name__)


class EMLBuildError(ValueError):
    """Raised when lesson inputs cannot be turned into EML models."""


# ---------------------------------------------------------------------------
# Tables and text
# ---------------------------------------------------------------------------


def load_table(path: str | Path) -> pd.DataFrame:
    """Read a CSV data table.

    Columns get pandas' nullable dtypes so integer columns with gaps stay
    integers; dates stay strings so that an exported copy reproduces the
    source text.
    """
    path = Path(path)
    if not path.exists():
        raise EMLBuildError(f"Data file not found: {path}")
    try:
        table = pd.read_csv(path).convert_dtypes()
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as exc:
        raise EMLBuildError(f"Cannot parse data file {path}: {exc}") from exc
    logger.debug("Loaded %s: %d rows, %d columns", path, len(table), len(table.columns))
    return table


def read_text(path: str | Path) -> list[str]:
    """Read a plain-text file as a list of paragraphs.

    Paragraphs are separated by blank lines; line breaks inside a paragraph
    are folded into single spaces.

    Raises:
        EMLBuildError: If the file is missing or holds no text.
    """
    path = Path(path)
    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise EMLBuildError(f"Cannot read {path}: {exc}") from exc

    paragraphs = [
        " ".join(line.strip() for line in block.splitlines() if line.strip())
        for block in re.split(r"\n\s*\n", raw_text)
    ]
    paragraphs = [paragraph for paragraph in paragraphs if paragraph]
    if not paragraphs:
        raise EMLBuildError(f"{path} contains no text.")
    return paragraphs


def load_methods(path: str | Path) -> Methods:
    """Read a markdown methods file into method steps.

    Every ``#`` heading opens a new step titled by the heading text. Text
    before the first heading becomes an untitled step.
    """
    path = Path(path)
    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise EMLBuildError(f"Cannot read {path}: {exc}") from exc

    steps: list[TextBlock] = []
    title: str | None = None
    paragraphs: list[str] = []
    buffer: list[str] = []

    def flush_paragraph() -> None:
        if buffer:
            paragraphs.append(" ".join(buffer))
            buffer.clear()

    def flush_step() -> None:
        flush_paragraph()
        if paragraphs:
            steps.append(TextBlock(title=title, paragraphs=list(paragraphs)))
        elif title is not None:
            logger.warning("Methods heading '%s' has no text; skipped.", title)
        paragraphs.clear()

    for line in raw_text.splitlines():
        stripped = line.strip()
        if stripped.startswith("#"):
            flush_step()
            title = stripped.lstrip("#").strip() or None
        elif stripped:
            buffer.append(stripped)
        else:
            flush_paragraph()
    flush_step()

    if not steps:
        raise EMLBuildError(f"{path} contains no methods text.")
    return Methods(steps=steps)


# ---------------------------------------------------------------------------
# Parties
# ---------------------------------------------------------------------------

_PERSON_PATTERN = re.compile(
    r"^\s*(?P<name>[^<\[]*?)\s*(?:<(?P<email>[^>]*)>)?\s*(?:\[(?P<roles>[^\]]*)\])?\s*$"
)

# MARC relator codes accepted inside [...] of a person string.
_RELATOR_CODES = {
    "aut": "author",
    "cre": "creator",
    "ctb": "contributor",
    "cph": "copyrightHolder",
    "fnd": "funder",
    "pi": "principalInvestigator",
    "ths": "thesisAdvisor",
}


def parse_person(text: str, role: PartyRole = PartyRole.creator) -> Party:
    """Parse a person string such as ``"Aaron Ellison <ae@example.org>"``.

    The accepted form is ``Given [Middle ...] Surname <email> [codes]``.
    Email and the bracketed role codes are optional; a single name token is
    taken as the surname. Role codes are kept as the free-text role, which
    associated parties require.

    Raises:
        EMLBuildError: If no name can be found in ``text``.
    """
    match = _PERSON_PATTERN.match(text or "")
    if match is None or not match.group("name"):
        raise EMLBuildError(f"Cannot parse a person name from '{text}'.")

    names = match.group("name").split()
    email = (match.group("email") or "").strip() or None
    roles = [code.strip() for code in (match.group("roles") or "").split(",") if code.strip()]
    role_text = ", ".join(_RELATOR_CODES.get(code, code) for code in roles) or None

    try:
        return Party(
            role=role,
            given_names=names[:-1],
            sur_name=names[-1],
            email=email,
            role_text=role_text,
        )
    except ValidationError as exc:
        raise EMLBuildError(f"Invalid person '{text}': {exc}") from exc


# ---------------------------------------------------------------------------
# Coverage
# ---------------------------------------------------------------------------


def taxon_classification(name: str) -> TaxonomicClassification:
    """Build a Genus → Species classification from a scientific name."""
    parts = name.split()
    if not parts:
        raise EMLBuildError("Empty taxonomic name.")
    if len(parts) == 1:
        return TaxonomicClassification(rank_name="Genus", rank_value=parts[0])

    # Infraspecific names hang below the species without a rank name.
    children = [TaxonomicClassification(rank_value=" ".join(parts))] if len(parts) > 2 else []
    species = TaxonomicClassification(
        rank_name="Species", rank_value=" ".join(parts[:2]), children=children
    )
    return TaxonomicClassification(rank_name="Genus", rank_value=parts[0], children=[species])


def _numeric_column(table: pd.DataFrame, column: str) -> pd.Series:
    if column not in table.columns:
        raise EMLBuildError(f"Column '{column}' not found in data.")
    try:
        values = pd.to_numeric(table[column], errors="raise").dropna()
    except (ValueError, TypeError) as exc:
        raise EMLBuildError(f"Column '{column}' is not numeric: {exc}") from exc
    if values.empty:
        raise EMLBuildError(f"Column '{column}' has no values.")
    return values


def compute_coverage(
    table: pd.DataFrame,
    date_column: str | None = None,
    taxon_column: str | None = None,
    latitude_column: str | None = None,
    longitude_column: str | None = None,
    geographic_description: str | None = None,
    altitude_minimum: float | None = None,
    altitude_maximum: float | None = None,
    altitude_units: str | None = None,
) -> Coverage:
    """Derive temporal, taxonomic and geographic coverage from a data table.

    Args:
        table: The data table.
        date_column: Column whose min/max give the temporal range.
        taxon_column: Column of scientific names; distinct names are sorted.
        latitude_column: Column of decimal latitudes.
        longitude_column: Column of decimal longitudes.
        geographic_description: Required when latitude/longitude are given.
        altitude_minimum: Optional lower altitude bound.
        altitude_maximum: Optional upper altitude bound.
        altitude_units: Unit of the altitude bounds, e.g. ``meter``.

    Returns:
        A ``Coverage`` holding whichever parts the columns allow.

    Raises:
        EMLBuildError: If a named column is missing, empty or unparseable.
    """
    temporal: TemporalCoverage | None = None
    if date_column is not None:
        if date_column not in table.columns:
            raise EMLBuildError(f"Column '{date_column}' not found in data.")
        try:
            dates = pd.to_datetime(table[date_column], errors="raise").dropna()
        except (ValueError, TypeError) as exc:
            raise EMLBuildError(f"Column '{date_column}' holds unparseable dates: {exc}") from exc
        if dates.empty:
            raise EMLBuildError(f"Column '{date_column}' has no dates.")
        temporal = TemporalCoverage(begin=dates.min().date(), end=dates.max().date())
        logger.debug("Temporal coverage %s to %s", temporal.begin, temporal.end)

    taxonomic: list[TaxonomicClassification] = []
    if taxon_column is not None:
        if taxon_column not in table.columns:
            raise EMLBuildError(f"Column '{taxon_column}' not found in data.")
        names = sorted(
            {str(name).strip() for name in table[taxon_column].dropna() if str(name).strip()}
        )
        taxonomic = [taxon_classification(name) for name in names]
        logger.debug("Taxonomic coverage: %s", ", ".join(names))

    geographic: GeographicCoverage | None = None
    if latitude_column is not None or longitude_column is not None:
        if latitude_column is None or longitude_column is None:
            raise EMLBuildError("Both latitude and longitude columns are needed for a bounding box.")
        if not geographic_description:
            raise EMLBuildError("A geographic description is required with a bounding box.")
        latitudes = _numeric_column(table, latitude_column)
        longitudes = _numeric_column(table, longitude_column)
        try:
            geographic = GeographicCoverage(
                description=geographic_description,
                west=float(longitudes.min()),
                east=float(longitudes.max()),
                north=float(latitudes.max()),
                south=float(latitudes.min()),
                altitude_minimum=altitude_minimum,
                altitude_maximum=altitude_maximum,
                altitude_units=altitude_units,
            )
        except ValidationError as exc:
            raise EMLBuildError(f"Invalid geographic coverage: {exc}") from exc

    return Coverage(geographic=geographic, temporal=temporal, taxonomic=taxonomic)


# ---------------------------------------------------------------------------
# Attributes
# ---------------------------------------------------------------------------

# columnClasses value -> (measurementScale, domain, numberType)
_COLUMN_CLASSES: dict[str, tuple[MeasurementScale, Domain, str | None]] = {
    "character": (MeasurementScale.nominal, Domain.text, None),
    "factor": (MeasurementScale.nominal, Domain.enumerated, None),
    "ordered": (MeasurementScale.ordinal, Domain.enumerated, None),
    "numeric": (MeasurementScale.ratio, Domain.numeric, "real"),
    "integer": (MeasurementScale.ratio, Domain.numeric, "integer"),
    "Date": (MeasurementScale.date_time, Domain.date_time, None),
}


def _cell(row: pd.Series, key: str) -> str | None:
    if key not in row.index:
        return None
    value = row[key]
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    text = str(value).strip()
    return text or None


def _float_cell(row: pd.Series, key: str, attribute_name: str) -> float | None:
    text = _cell(row, key)
    if text is None:
        return None
    try:
        return float(text)
    except ValueError:
        raise EMLBuildError(f"{attribute_name}: {key} '{text}' is not a number.") from None


def _factor_codes(factors: pd.DataFrame | None) -> dict[str, list[CodeDefinition]]:
    codes: dict[str, list[CodeDefinition]] = {}
    if factors is None:
        return codes
    missing = {"attributeName", "code", "definition"} - set(factors.columns)
    if missing:
        raise EMLBuildError(f"Factor table is missing columns: {', '.join(sorted(missing))}")
    for _, row in factors.iterrows():
        name = _cell(row, "attributeName")
        code = _cell(row, "code")
        definition = _cell(row, "definition")
        if name is None or code is None or definition is None:
            raise EMLBuildError(f"Incomplete factor row: {row.to_dict()}")
        codes.setdefault(name, []).append(CodeDefinition(code=code, definition=definition))
    return codes


def build_attributes(
    attributes: pd.DataFrame,
    factors: pd.DataFrame | None = None,
    column_classes: dict[str, str] | None = None,
) -> list[Attribute]:
    """Combine an attribute side-table and a factor side-table.

    The attribute table has one row per column with at least
    ``attributeName`` and ``attributeDefinition``. ``measurementScale``,
    ``domain`` and ``numberType`` may be given directly or derived from a
    column class (``character``, ``factor``, ``ordered``, ``numeric``,
    ``integer``, ``Date``) taken from ``column_classes`` or from a
    ``columnClasses`` column. Factor rows (``attributeName``, ``code``,
    ``definition``) become the enumerated domain of their attribute.

    Args:
        attributes: Attribute side-table.
        factors: Optional factor side-table.
        column_classes: Optional mapping of attribute name to column class.

    Returns:
        Attributes in side-table order.

    Raises:
        EMLBuildError: If a row is incomplete or describes an invalid attribute.
    """
    required = {"attributeName", "attributeDefinition"} - set(attributes.columns)
    if required:
        raise EMLBuildError(f"Attribute table is missing columns: {', '.join(sorted(required))}")

    codes_by_name = _factor_codes(factors)
    column_classes = column_classes or {}
    result: list[Attribute] = []

    for _, row in attributes.iterrows():
        name = _cell(row, "attributeName")
        definition = _cell(row, "attributeDefinition")
        if name is None or definition is None:
            raise EMLBuildError(f"Attribute row needs a name and a definition: {row.to_dict()}")

        column_class = column_classes.get(name) or _cell(row, "columnClasses")
        if column_class is not None and column_class not in _COLUMN_CLASSES:
            raise EMLBuildError(f"{name}: unknown column class '{column_class}'.")
        class_scale, class_domain, class_number_type = (
            _COLUMN_CLASSES[column_class] if column_class else (None, None, None)
        )

        scale_text = _cell(row, "measurementScale")
        domain_text = _cell(row, "domain")
        try:
            scale = MeasurementScale(scale_text) if scale_text else class_scale
            domain = Domain(domain_text) if domain_text else class_domain
        except ValueError as exc:
            raise EMLBuildError(f"{name}: {exc}") from exc
        if scale is None:
            raise EMLBuildError(f"{name}: no measurementScale or column class given.")
        if domain is None:
            if scale in (MeasurementScale.nominal, MeasurementScale.ordinal):
                domain = Domain.enumerated if name in codes_by_name else Domain.text
            elif scale == MeasurementScale.date_time:
                domain = Domain.date_time
            else:
                domain = Domain.numeric
        if name in codes_by_name and domain != Domain.enumerated:
            raise EMLBuildError(f"{name}: factor codes given but domain is {domain.value}.")

        missing_code = _cell(row, "missingValueCode")
        missing_values = []
        if missing_code is not None:
            explanation = _cell(row, "missingValueCodeExplanation") or "Value not recorded."
            missing_values.append(MissingValueCode(code=missing_code, explanation=explanation))

        text_definition = None
        if domain == Domain.text:
            text_definition = _cell(row, "definition") or definition

        try:
            attribute = Attribute(
                name=name,
                definition=definition,
                label=_cell(row, "attributeLabel"),
                storage_type=_cell(row, "storageType"),
                measurement_scale=scale,
                domain=domain,
                text_definition=text_definition,
                codes=codes_by_name.get(name, []) if domain == Domain.enumerated else [],
                unit=_cell(row, "unit"),
                custom_unit=(_cell(row, "unitType") or "").lower() == "custom",
                number_type=_cell(row, "numberType") or class_number_type,
                minimum=_float_cell(row, "minimum", name),
                maximum=_float_cell(row, "maximum", name),
                format_string=_cell(row, "formatString"),
                date_time_precision=_cell(row, "dateTimePrecision"),
                missing_value_codes=missing_values,
            )
        except ValidationError as exc:
            raise EMLBuildError(f"Invalid attribute '{name}': {exc}") from exc
        result.append(attribute)

    described = {attribute.name for attribute in result}
    orphans = sorted(set(codes_by_name) - described)
    if orphans:
        raise EMLBuildError(f"Factor codes for unknown attributes: {', '.join(orphans)}")
    return result


def check_attributes(table: pd.DataFrame, attributes: Iterable[Attribute]) -> list[str]:
    """Compare an attribute list with the data it describes.

    Returns:
        Problem messages. Empty means every column is described exactly once,
        in column order, and every enumerated domain lists exactly the
        distinct values found in its column.
    """
    attributes = list(attributes)
    problems: list[str] = []
    names = [attribute.name for attribute in attributes]
    columns = [str(column) for column in table.columns]

    for column in columns:
        if column not in names:
            problems.append(f"Column '{column}' has no attribute description.")
    for name in names:
        if name not in columns:
            problems.append(f"Attribute '{name}' does not match any column.")
    if not problems and names != columns:
        problems.append("Attribute order does not match column order.")

    for attribute in attributes:
        if attribute.domain != Domain.enumerated or attribute.name not in columns:
            continue
        missing = {code.code for code in attribute.missing_value_codes}
        observed = {str(value).strip() for value in table[attribute.name].dropna()} - missing
        declared = {code.code for code in attribute.codes}
        undocumented = sorted(observed - declared)
        unused = sorted(declared - observed)
        if undocumented:
            problems.append(
                f"Attribute '{attribute.name}': values without a code definition:"
                f" {', '.join(undocumented)}."
            )
        if unused:
            problems.append(
                f"Attribute '{attribute.name}': codes not present in the data:"
                f" {', '.join(unused)}."
            )
    return problems


def raise_for_problems(problems: list[str]) -> None:
    """Raise ``EMLBuildError`` listing ``problems`` if there are any."""
    if problems:
        raise EMLBuildError("; ".join(problems))


def infer_column_classes(table: pd.DataFrame, max_levels: int = 10) -> dict[str, str]:
    """Guess a column class for every column of ``table``.

    Numeric columns become ``integer`` or ``numeric``. Text columns that all
    parse as ISO dates become ``Date``; text columns with few distinct values
    become ``factor``; the rest are ``character``.
    """
    classes: dict[str, str] = {}
    for column in table.columns:
        series = table[column]
        if pd.api.types.is_bool_dtype(series):
            classes[str(column)] = "factor"
        elif pd.api.types.is_integer_dtype(series):
            classes[str(column)] = "integer"
        elif pd.api.types.is_numeric_dtype(series):
            classes[str(column)] = "numeric"
        else:
            values = series.dropna().astype(str)
            try:
                pd.to_datetime(values, format="%Y-%m-%d", errors="raise")
                is_date = not values.empty
            except (ValueError, TypeError):
                is_date = False
            if is_date:
                classes[str(column)] = "Date"
            elif values.nunique() <= max_levels and values.nunique() < len(values):
                classes[str(column)] = "factor"
            else:
                classes[str(column)] = "character"
    return classes


ATTRIBUTE_TEMPLATE_COLUMNS = [
    "attributeName",
    "attributeDefinition",
    "columnClasses",
    "measurementScale",
    "domain",
    "formatString",
    "definition",
    "unit",
    "unitType",
    "numberType",
    "minimum",
    "maximum",
    "missingValueCode",
    "missingValueCodeExplanation",
]


def attribute_template(table: pd.DataFrame) -> pd.DataFrame:
    """Return an attribute side-table skeleton for ``table``.

    One row per column with the guessed column class filled in; the
    definitions are left blank for the author.
    """
    classes = infer_column_classes(table)
    rows = []
    for column, column_class in classes.items():
        row = dict.fromkeys(ATTRIBUTE_TEMPLATE_COLUMNS, "")
        row["attributeName"] = column
        row["columnClasses"] = column_class
        if column_class == "Date":
            row["formatString"] = "YYYY-MM-DD"
        if column_class in ("numeric", "integer"):
            row["minimum"] = table[column].min()
            row["maximum"] = table[column].max()
        rows.append(row)
    return pd.DataFrame(rows, columns=ATTRIBUTE_TEMPLATE_COLUMNS)


# ---------------------------------------------------------------------------
# Physical description
# ---------------------------------------------------------------------------

_CHECKSUM_METHODS = {
    "MD5": "md5",
    "SHA-1": "sha1",
    "SHA1": "sha1",
    "SHA-256": "sha256",
    "SHA256": "sha256",
}

_CANONICAL_METHODS = {"md5": "MD5", "sha1": "SHA-1", "sha256": "SHA-256"}


def _hash_name(method: str) -> str:
    try:
        return _CHECKSUM_METHODS[method.upper()]
    except KeyError:
        supported = ", ".join(sorted(set(_CANONICAL_METHODS.values())))
        raise EMLBuildError(
            f"Unsupported checksum method '{method}'. Use one of: {supported}."
        ) from None


def export_table(table: pd.DataFrame, path: str | Path, na_rep: str = "NA") -> Path:
    """Write ``table`` as CSV with ``\\n`` line endings and no index column.

    Missing values are written as ``na_rep``.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    table.to_csv(path, index=False, lineterminator="\n", na_rep=na_rep)
    logger.debug("Exported %d rows to %s", len(table), path)
    return path


def compute_checksum(file_path: str | Path, method: str = "MD5") -> str:
    """Compute the hex digest of a file.

    Args:
        file_path: Absolute or relative path to the file.
        method: ``MD5``, ``SHA-1`` or ``SHA-256``.

    Returns:
        Lowercase hex string of the digest.
    """
    hasher = hashlib.new(_hash_name(method))
    path = Path(file_path)
    with path.open("rb") as binary_handle:
        for chunk in iter(lambda: binary_handle.read(65536), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def compute_sha256(file_path: str | Path) -> str:
    """Compute the SHA-256 hex digest of a file."""
    return compute_checksum(file_path, "SHA-256")


def describe_physical(
    file_path: str | Path,
    checksum_method: str = "MD5",
    url: str | None = None,
    text_format: TextFormat | None = None,
) -> Physical:
    """Describe a data file: name, byte size and checksum.

    Raises:
        EMLBuildError: If the file does not exist or the method is unsupported.
    """
    path = Path(file_path)
    if not path.is_file():
        raise EMLBuildError(f"Data file not found: {path}")
    method = _CANONICAL_METHODS[_hash_name(checksum_method)]
    return Physical(
        object_name=path.name,
        size=path.stat().st_size,
        checksum=compute_checksum(path, method),
        checksum_method=method,
        text_format=text_format or TextFormat(),
        url=url,
    )


def new_package_id() -> str:
    """Return a fresh ``urn:uuid:`` package identifier."""
    return f"urn:uuid:{uuid.uuid4()}"


__all__ = [
    "ATTRIBUTE_TEMPLATE_COLUMNS",
    "EMLBuildError",
    "attribute_template",
    "build_attributes",
    "check_attributes",
    "compute_checksum",
    "compute_coverage",
    "compute_sha256",
    "describe_physical",
    "export_table",
    "infer_column_classes",
    "load_methods",
    "load_table",
    "new_package_id",
    "parse_person",
    "raise_for_problems",
    "read_text",
    "taxon_classification",
]
