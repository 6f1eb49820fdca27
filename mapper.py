from typing import List, Optional

from schemas import TableModel, PositionedItem, BoundField, FieldDefinition, Band
from extractor import display_text
from config import ConverterConfig, DEFAULT_CONFIG


def field_name(index: int) -> str:
    """Field name for a zero-based column index: Field1, Field2, ..."""
    return f"Field{index + 1}"


def table_to_fields(table: TableModel) -> List[FieldDefinition]:
    return [FieldDefinition(name=field_name(i)) for i in range(len(table.headers))]


def build_column_header(table: TableModel, config: Optional[ConverterConfig] = None) -> Band:
    """One static text per header. Empty headers show their field name instead."""
    config = config or DEFAULT_CONFIG
    cell = config.header_cell

    static_texts = [
        PositionedItem(
            text=header or field_name(i),
            x=i * cell.width, y=0, width=cell.width, height=cell.height,
        )
        for i, header in enumerate(table.headers)
    ]
    return Band(height=config.header_band_height, static_texts=static_texts)


def build_detail_band(row: List[str], config: Optional[ConverterConfig] = None) -> Band:
    config = config or DEFAULT_CONFIG
    cell = config.detail_cell

    text_fields = [
        BoundField(
            text=display_text(value),
            field_name=field_name(i),
            x=i * cell.width, y=0, width=cell.width, height=cell.height,
        )
        for i, value in enumerate(row)
    ]
    return Band(height=config.detail_band_height, text_fields=text_fields)


def build_detail_bands(table: TableModel, config: Optional[ConverterConfig] = None) -> List[Band]:
    """
    One detail band per table row.

    Every band places its fields at y = 0; the report engine stacks bands
    vertically when it fills the template.
    """
    return [build_detail_band(row, config) for row in table.rows]


def rows_to_band(rows: List[List[str]], config: Optional[ConverterConfig] = None) -> Band:
    """Lay out raw HTML table rows as static texts in one tall detail band."""
    config = config or DEFAULT_CONFIG
    width = config.html_table_cell_width

    static_texts = []
    for row_index, row in enumerate(rows):
        y = row_index * config.row_increment
        for col, value in enumerate(row):
            static_texts.append(PositionedItem(
                text=display_text(value),
                x=col * width, y=y, width=width, height=config.item_height,
            ))
    return Band(height=config.html_band_height, static_texts=static_texts)


def flow_to_band(items: List[PositionedItem], config: Optional[ConverterConfig] = None) -> Band:
    """Place already-positioned flow items into one tall detail band."""
    config = config or DEFAULT_CONFIG

    static_texts = [
        PositionedItem(
            text=display_text(item.text),
            x=item.x, y=item.y, width=item.width, height=config.item_height,
        )
        for item in items
    ]
    return Band(height=config.html_band_height, static_texts=static_texts)
