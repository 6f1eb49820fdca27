"""Report document assembly and JRXML output."""

import re
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional

from schemas import ReportDocument, FieldDefinition, Band, PositionedItem, BoundField
from config import ConverterConfig, DEFAULT_CONFIG

ROOT_TAG = "jasperReport"
JASPER_NAMESPACE = "http://jasperreports.sourceforge.net/jasperreports"
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"
SCHEMA_LOCATION = f"{JASPER_NAMESPACE} http://jasperreports.sourceforge.net/xsd/jasperreport.xsd"
DATA_ADAPTER_PROPERTY = "com.jaspersoft.studio.data.defaultdataadapter"

XML_MIME_TYPE = "application/xml"
REPORT_SUFFIX = ".jrxml"
DEFAULT_FILENAME = "report.jrxml"

# Control characters XML 1.0 does not allow, even escaped.
INVALID_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


def assemble_report(
    source_kind: str,
    detail_bands: List[Band],
    fields: Optional[List[FieldDefinition]] = None,
    column_header: Optional[Band] = None,
    config: Optional[ConverterConfig] = None,
    name: Optional[str] = None,
) -> ReportDocument:
    """Wrap generated bands in a report with the page geometry for ``source_kind``."""
    config = config or DEFAULT_CONFIG
    geometry = config.geometry_for(source_kind)

    return ReportDocument(
        name=name or config.report_name,
        page_width=geometry.page_width,
        page_height=geometry.page_height,
        column_width=geometry.column_width,
        left_margin=geometry.left_margin,
        right_margin=geometry.right_margin,
        top_margin=geometry.top_margin,
        bottom_margin=geometry.bottom_margin,
        properties={DATA_ADAPTER_PROPERTY: config.default_data_adapter},
        fields=fields or [],
        column_header=column_header,
        detail_bands=detail_bands,
    )


# 1. MAPPING FORM
# '@' holds attributes, '#text' holds element text, lists become repeated
# sibling elements.
def _report_element(item: PositionedItem) -> Dict[str, Any]:
    return {"@": {"x": item.x, "y": item.y, "width": item.width, "height": item.height}}


def _static_text(item: PositionedItem) -> Dict[str, Any]:
    return {
        "reportElement": _report_element(item),
        "text": {"#text": item.text},
    }


def _text_field(item: BoundField, config: ConverterConfig) -> Dict[str, Any]:
    return {
        "reportElement": _report_element(item),
        "box": {
            "pen": {"@": {
                "lineWidth": config.box_line_width,
                "lineStyle": config.box_line_style,
                "lineColor": config.box_line_color,
            }},
        },
        "textElement": {"font": {"@": {"fontName": config.font_name}}},
        "textFieldExpression": {"#text": item.expression},
    }


def _band(band: Band, config: ConverterConfig) -> Dict[str, Any]:
    mapping: Dict[str, Any] = {"@": {"height": band.height}}
    if band.static_texts:
        mapping["staticText"] = [_static_text(item) for item in band.static_texts]
    if band.text_fields:
        mapping["textField"] = [_text_field(item, config) for item in band.text_fields]
    return mapping


def build_mapping(document: ReportDocument, config: Optional[ConverterConfig] = None) -> Dict[str, Any]:
    """Convert a report document into the nested attribute/text mapping."""
    config = config or DEFAULT_CONFIG

    mapping: Dict[str, Any] = {
        "@": {
            "xmlns": JASPER_NAMESPACE,
            "xmlns:xsi": XSI_NAMESPACE,
            "xsi:schemaLocation": SCHEMA_LOCATION,
            "name": document.name,
            "pageWidth": document.page_width,
            "pageHeight": document.page_height,
            "columnWidth": document.column_width,
            "leftMargin": document.left_margin,
            "rightMargin": document.right_margin,
            "topMargin": document.top_margin,
            "bottomMargin": document.bottom_margin,
        },
        "property": [
            {"@": {"name": name, "value": value}}
            for name, value in document.properties.items()
        ],
    }
    if document.fields:
        mapping["field"] = [
            {"@": {"name": f.name, "class": f.value_class}} for f in document.fields
        ]
    if document.column_header is not None:
        mapping["columnHeader"] = {"band": _band(document.column_header, config)}
    mapping["detail"] = {"band": [_band(band, config) for band in document.detail_bands]}
    return mapping


# 2. XML WRITER
def _xml_text(value: Any) -> str:
    return INVALID_XML_CHARS.sub("", str(value))


def _append(element: ET.Element, key: str, value: Any) -> None:
    if key == "@":
        for attr, attr_value in value.items():
            element.set(attr, _xml_text(attr_value))
    elif key == "#text":
        element.text = _xml_text(value)
    elif isinstance(value, list):
        for entry in value:
            _append(element, key, entry)
    elif isinstance(value, dict):
        child = ET.SubElement(element, key)
        for child_key, child_value in value.items():
            _append(child, child_key, child_value)
    else:
        ET.SubElement(element, key).text = _xml_text(value)


def serialize(mapping: Dict[str, Any], root: str = ROOT_TAG) -> str:
    """Render a nested attribute/text mapping as an XML document string."""
    element = ET.Element(root)
    for key, value in mapping.items():
        _append(element, key, value)
    ET.indent(element, space="  ")
    body = ET.tostring(element, encoding="unicode")
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + body + "\n"


def to_jrxml(document: ReportDocument, config: Optional[ConverterConfig] = None) -> str:
    return serialize(build_mapping(document, config), ROOT_TAG)
