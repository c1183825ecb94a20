"""Validation of EML documents."""

from __future__ import annotations

import logging
from collections import Counter
from functools import lru_cache
from pathlib import Path

from lxml import etree

from aumai_emlkit.models import ValidationReport
from aumai_emlkit.serializer import EML_NAMESPACE

logger = logging.getLogger(__name__)


@lru_cache(maxsize=8)
def _parse_schema(schema_path: str, mtime_ns: int) -> etree.XMLSchema:
    logger.debug("Loading XML schema %s", schema_path)
    return etree.XMLSchema(etree.parse(schema_path))


def _load_schema(schema_path: Path) -> etree.XMLSchema:
    """Return the compiled schema, recompiling when the file changes."""
    resolved = schema_path.resolve()
    return _parse_schema(str(resolved), resolved.stat().st_mtime_ns)


class EMLValidator:
    """Checks EML documents for well-formedness, content rules and schema validity.

    Schema validation is delegated to ``lxml`` against an EML XSD, normally
    ``eml.xsd`` from the official EML distribution. Without a schema the
    remaining checks still run and the report records ``schema_checked=False``.
    """

    def __init__(self, schema_path: str | Path | None = None) -> None:
        self.schema_path = Path(schema_path) if schema_path is not None else None

    def validate(self, source: str | Path | bytes) -> ValidationReport:
        """Validate an EML document.

        Args:
            source: Path to an XML file, or the XML document as bytes.

        Returns:
            A ``ValidationReport``; ``valid`` is True only if every check passed.
        """
        try:
            if isinstance(source, bytes):
                tree = etree.ElementTree(etree.fromstring(source))
            else:
                tree = etree.parse(str(source))
        except (OSError, etree.XMLSyntaxError) as exc:
            logger.warning("EML document is not well-formed: %s", exc)
            return ValidationReport(valid=False, errors=[f"Document is not well-formed: {exc}"])

        errors = self._check_root(tree.getroot())
        errors.extend(self._check_references(tree))

        schema_checked = False
        if self.schema_path is None:
            logger.warning("No EML schema configured; skipping XSD validation.")
        else:
            schema_errors = self._check_schema(tree, self.schema_path)
            errors.extend(schema_errors)
            schema_checked = True

        for error in errors:
            logger.warning("EML validation: %s", error)
        return ValidationReport(
            valid=not errors,
            errors=errors,
            schema_checked=schema_checked,
            schema_path=str(self.schema_path) if self.schema_path is not None else None,
        )

    def _check_root(self, root: etree._Element) -> list[str]:
        errors: list[str] = []
        if root.tag != f"{{{EML_NAMESPACE}}}eml":
            errors.append(f"Root element is {root.tag}, expected {{{EML_NAMESPACE}}}eml.")
        for attribute in ("packageId", "system"):
            if not (root.get(attribute) or "").strip():
                errors.append(f"Root element is missing the '{attribute}' attribute.")
        return errors

    def _check_references(self, tree: etree._ElementTree) -> list[str]:
        """Check the id/references rules that XSD cannot express."""
        errors: list[str] = []
        ids = Counter(tree.xpath("//@id"))
        for duplicate in sorted(value for value, count in ids.items() if count > 1):
            errors.append(f"Duplicate id '{duplicate}'.")
        for reference in tree.xpath("//*[local-name()='references']"):
            target = (reference.text or "").strip()
            if target not in ids:
                errors.append(
                    f"Line {reference.sourceline}: references '{target}' matches no id."
                )
        return errors

    def _check_schema(self, tree: etree._ElementTree, schema_path: Path) -> list[str]:
        try:
            schema = _load_schema(schema_path)
        except (OSError, etree.XMLSchemaParseError, etree.XMLSyntaxError) as exc:
            return [f"Cannot load schema {schema_path}: {exc}"]
        if schema.validate(tree):
            return []
        return [f"Line {error.line}: {error.message}" for error in schema.error_log]


def validate_eml(
    source: str | Path | bytes,
    schema_path: str | Path | None = None,
) -> ValidationReport:
    """Validate ``source`` with a one-off ``EMLValidator``."""
    return EMLValidator(schema_path).validate(source)


__all__ = [
    "EMLValidator",
    "validate_eml",
]
