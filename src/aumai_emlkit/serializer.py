"""Serialize EML models to EML 2.2.0 XML."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path

from aumai_emlkit.models import (
    Attribute,
    Coverage,
    DataTable,
    Dataset,
    Domain,
    EMLDocument,
    MeasurementScale,
    Methods,
    Party,
    PartyRole,
    Physical,
    TaxonomicClassification,
    TextBlock,
)

logger = logging.getLogger(__name__)

EML_NAMESPACE = "https://eml.ecoinformatics.org/eml-2.2.0"
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"
SCHEMA_LOCATION = f"{EML_NAMESPACE} {EML_NAMESPACE}/eml.xsd"

ET.register_namespace("eml", EML_NAMESPACE)
ET.register_namespace("xsi", XSI_NAMESPACE)


def _text(parent: ET.Element, tag: str, value: object) -> ET.Element:
    element = ET.SubElement(parent, tag)
    element.text = str(value)
    return element


def _number(value: float) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


def _paragraphs(parent: ET.Element, tag: str, paragraphs: list[str]) -> ET.Element:
    element = ET.SubElement(parent, tag)
    for paragraph in paragraphs:
        _text(element, "para", paragraph)
    return element


def _party(parent: ET.Element, tag: PartyRole, party: Party) -> None:
    element = ET.SubElement(parent, tag.value)
    if party.sur_name:
        name = ET.SubElement(element, "individualName")
        for given_name in party.given_names:
            _text(name, "givenName", given_name)
        _text(name, "surName", party.sur_name)
    if party.organization_name:
        _text(element, "organizationName", party.organization_name)
    if party.position_name:
        _text(element, "positionName", party.position_name)
    if party.address is not None:
        address = ET.SubElement(element, "address")
        for delivery_point in party.address.delivery_points:
            _text(address, "deliveryPoint", delivery_point)
        for tag, value in (
            ("city", party.address.city),
            ("administrativeArea", party.address.administrative_area),
            ("postalCode", party.address.postal_code),
            ("country", party.address.country),
        ):
            if value:
                _text(address, tag, value)
    if party.phone:
        _text(element, "phone", party.phone)
    if party.email:
        _text(element, "electronicMailAddress", party.email)
    if party.online_url:
        _text(element, "onlineUrl", party.online_url)
    if party.user_id:
        user_id = _text(element, "userId", party.user_id)
        if party.user_id_directory:
            user_id.set("directory", party.user_id_directory)
    if tag == PartyRole.associated_party and party.role_text:
        _text(element, "role", party.role_text)


def _taxon(parent: ET.Element, taxon: TaxonomicClassification) -> None:
    element = ET.SubElement(parent, "taxonomicClassification")
    if taxon.rank_name:
        _text(element, "taxonRankName", taxon.rank_name)
    _text(element, "taxonRankValue", taxon.rank_value)
    for common_name in taxon.common_names:
        _text(element, "commonName", common_name)
    for child in taxon.children:
        _taxon(element, child)


def _coverage(parent: ET.Element, coverage: Coverage) -> None:
    element = ET.SubElement(parent, "coverage")
    geographic = coverage.geographic
    if geographic is not None:
        geo = ET.SubElement(element, "geographicCoverage")
        _text(geo, "geographicDescription", geographic.description)
        bounds = ET.SubElement(geo, "boundingCoordinates")
        _text(bounds, "westBoundingCoordinate", _number(geographic.west))
        _text(bounds, "eastBoundingCoordinate", _number(geographic.east))
        _text(bounds, "northBoundingCoordinate", _number(geographic.north))
        _text(bounds, "southBoundingCoordinate", _number(geographic.south))
        if geographic.altitude_units is not None:
            altitudes = ET.SubElement(bounds, "boundingAltitudes")
            _text(altitudes, "altitudeMinimum", _number(geographic.altitude_minimum))  # type: ignore[arg-type]
            _text(altitudes, "altitudeMaximum", _number(geographic.altitude_maximum))  # type: ignore[arg-type]
            _text(altitudes, "altitudeUnits", geographic.altitude_units)
    if coverage.temporal is not None:
        temporal = ET.SubElement(element, "temporalCoverage")
        dates = ET.SubElement(temporal, "rangeOfDates")
        _text(ET.SubElement(dates, "beginDate"), "calendarDate", coverage.temporal.begin.isoformat())
        _text(ET.SubElement(dates, "endDate"), "calendarDate", coverage.temporal.end.isoformat())
    if coverage.taxonomic:
        taxonomic = ET.SubElement(element, "taxonomicCoverage")
        for taxon in coverage.taxonomic:
            _taxon(taxonomic, taxon)


def _text_block(parent: ET.Element, block: TextBlock) -> None:
    if block.title is None:
        for paragraph in block.paragraphs:
            _text(parent, "para", paragraph)
        return
    section = ET.SubElement(parent, "section")
    _text(section, "title", block.title)
    for paragraph in block.paragraphs:
        _text(section, "para", paragraph)


def _methods(parent: ET.Element, methods: Methods) -> None:
    element = ET.SubElement(parent, "methods")
    for step in methods.steps:
        description = ET.SubElement(ET.SubElement(element, "methodStep"), "description")
        _text_block(description, step)


def _measurement_scale(parent: ET.Element, attribute: Attribute) -> None:
    scale = ET.SubElement(ET.SubElement(parent, "measurementScale"), attribute.measurement_scale.value)

    if attribute.measurement_scale in (MeasurementScale.nominal, MeasurementScale.ordinal):
        domain = ET.SubElement(scale, "nonNumericDomain")
        if attribute.domain == Domain.enumerated:
            enumerated = ET.SubElement(domain, "enumeratedDomain")
            for code in attribute.codes:
                definition = ET.SubElement(enumerated, "codeDefinition")
                _text(definition, "code", code.code)
                _text(definition, "definition", code.definition)
        else:
            text_domain = ET.SubElement(domain, "textDomain")
            _text(text_domain, "definition", attribute.text_definition or attribute.definition)
        return

    if attribute.measurement_scale == MeasurementScale.date_time:
        _text(scale, "formatString", attribute.format_string)
        if attribute.date_time_precision:
            _text(scale, "dateTimePrecision", attribute.date_time_precision)
        return

    unit = ET.SubElement(scale, "unit")
    _text(unit, "customUnit" if attribute.custom_unit else "standardUnit", attribute.unit)
    numeric = ET.SubElement(scale, "numericDomain")
    _text(numeric, "numberType", attribute.number_type)
    if attribute.minimum is not None or attribute.maximum is not None:
        bounds = ET.SubElement(numeric, "bounds")
        if attribute.minimum is not None:
            _text(bounds, "minimum", _number(attribute.minimum)).set("exclusive", "false")
        if attribute.maximum is not None:
            _text(bounds, "maximum", _number(attribute.maximum)).set("exclusive", "false")


def _attribute(parent: ET.Element, attribute: Attribute) -> None:
    element = ET.SubElement(parent, "attribute")
    _text(element, "attributeName", attribute.name)
    if attribute.label:
        _text(element, "attributeLabel", attribute.label)
    _text(element, "attributeDefinition", attribute.definition)
    if attribute.storage_type:
        _text(element, "storageType", attribute.storage_type)
    _measurement_scale(element, attribute)
    for missing in attribute.missing_value_codes:
        code = ET.SubElement(element, "missingValueCode")
        _text(code, "code", missing.code)
        _text(code, "codeExplanation", missing.explanation)


def _physical(parent: ET.Element, physical: Physical) -> None:
    element = ET.SubElement(parent, "physical")
    _text(element, "objectName", physical.object_name)
    _text(element, "size", physical.size).set("unit", "byte")
    _text(element, "authentication", physical.checksum).set("method", physical.checksum_method)
    if physical.character_encoding:
        _text(element, "characterEncoding", physical.character_encoding)
    text_format = ET.SubElement(ET.SubElement(element, "dataFormat"), "textFormat")
    _text(text_format, "numHeaderLines", physical.text_format.num_header_lines)
    _text(text_format, "recordDelimiter", physical.text_format.record_delimiter)
    _text(text_format, "attributeOrientation", physical.text_format.attribute_orientation)
    delimited = ET.SubElement(text_format, "simpleDelimited")
    _text(delimited, "fieldDelimiter", physical.text_format.field_delimiter)
    if physical.text_format.quote_character:
        _text(delimited, "quoteCharacter", physical.text_format.quote_character)
    if physical.url:
        online = ET.SubElement(ET.SubElement(element, "distribution"), "online")
        _text(online, "url", physical.url).set("function", "download")


def _data_table(parent: ET.Element, table: DataTable) -> None:
    element = ET.SubElement(parent, "dataTable")
    _text(element, "entityName", table.entity_name)
    if table.entity_description:
        _text(element, "entityDescription", table.entity_description)
    _physical(element, table.physical)
    attribute_list = ET.SubElement(element, "attributeList")
    for attribute in table.attributes:
        _attribute(attribute_list, attribute)
    if table.number_of_records is not None:
        _text(element, "numberOfRecords", table.number_of_records)


def _dataset(parent: ET.Element, dataset: Dataset) -> None:
    element = ET.SubElement(parent, "dataset")
    if dataset.short_name:
        _text(element, "shortName", dataset.short_name)
    _text(element, "title", dataset.title)
    for party in dataset.creators:
        _party(element, PartyRole.creator, party)
    for party in dataset.metadata_providers:
        _party(element, PartyRole.metadata_provider, party)
    for party in dataset.associated_parties:
        _party(element, PartyRole.associated_party, party)
    if dataset.pub_date is not None:
        _text(element, "pubDate", dataset.pub_date.isoformat())
    if dataset.language:
        _text(element, "language", dataset.language)
    _paragraphs(element, "abstract", dataset.abstract)
    for keyword_set in dataset.keyword_sets:
        keywords = ET.SubElement(element, "keywordSet")
        for keyword in keyword_set.keywords:
            _text(keywords, "keyword", keyword)
        if keyword_set.thesaurus:
            _text(keywords, "keywordThesaurus", keyword_set.thesaurus)
    if dataset.license is not None:
        if dataset.license.rights:
            _paragraphs(element, "intellectualRights", dataset.license.rights)
        licensed = ET.SubElement(element, "licensed")
        _text(licensed, "licenseName", dataset.license.name)
        if dataset.license.url:
            _text(licensed, "url", dataset.license.url)
        if dataset.license.identifier:
            _text(licensed, "identifier", dataset.license.identifier)
    if dataset.coverage is not None:
        _coverage(element, dataset.coverage)
    for contact in dataset.contacts:
        _party(element, PartyRole.contact, contact)
    if dataset.methods is not None:
        _methods(element, dataset.methods)
    for table in dataset.data_tables:
        _data_table(element, table)


def to_element(document: EMLDocument) -> ET.Element:
    """Build the ``eml:eml`` element tree for ``document``.

    Children follow the element order of the EML 2.2.0 schema.
    """
    root = ET.Element(
        f"{{{EML_NAMESPACE}}}eml",
        {
            "packageId": document.package_id,
            "system": document.system,
            f"{{{XSI_NAMESPACE}}}schemaLocation": SCHEMA_LOCATION,
        },
    )
    _dataset(root, document.dataset)
    return root


def to_xml(document: EMLDocument) -> bytes:
    """Serialize ``document`` to indented UTF-8 XML bytes.

    The output depends only on the document: equal documents give equal bytes.
    """
    root = to_element(document)
    ET.indent(root, space="  ")
    return ET.tostring(root, encoding="UTF-8", xml_declaration=True) + b"\n"


def write_eml(document: EMLDocument, path: str | Path) -> Path:
    """Write ``document`` to ``path``, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = to_xml(document)
    path.write_bytes(payload)
    logger.info("Wrote %s (%d bytes, packageId=%s)", path, len(payload), document.package_id)
    return path


__all__ = [
    "EML_NAMESPACE",
    "SCHEMA_LOCATION",
    "XSI_NAMESPACE",
    "to_element",
    "to_xml",
    "write_eml",
]
