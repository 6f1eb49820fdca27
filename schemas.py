from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, model_validator


# 1. TABLE STRUCTURE
class TableModel(BaseModel):
    """Rectangular header+rows table. Every row has exactly len(headers) cells.

    Headers and rows are stored as tuples so the row width cannot drift after
    construction.
    """
    model_config = ConfigDict(frozen=True)

    headers: Tuple[str, ...] = Field(default=(), description="Column headers in order")
    rows: Tuple[Tuple[str, ...], ...] = Field(default=(), description="Rows, padded or truncated to the header width")

    @model_validator(mode="before")
    @classmethod
    def _normalize_rows(cls, data):
        if not isinstance(data, dict):
            return data
        headers = tuple(data.get("headers") or ())
        width = len(headers)
        rows = []
        for row in data.get("rows") or ():
            cells = list(row)[:width]
            cells.extend([""] * (width - len(cells)))
            rows.append(tuple(cells))
        return {**data, "headers": headers, "rows": tuple(rows)}

    @property
    def is_empty(self) -> bool:
        return not self.headers


# 2. LAYOUT ELEMENTS
class PositionedItem(BaseModel):
    """One placed text unit."""
    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="Display text")
    x: int
    y: int
    width: int
    height: int


class BoundField(PositionedItem):
    """A positioned item whose content comes from a report field."""
    field_name: str = Field(..., description="Report field this element is bound to (Field1, Field2, ...)")

    @property
    def expression(self) -> str:
        return f"$F{{{self.field_name}}}"


class FieldDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value_class: str = "java.lang.String"


class Band(BaseModel):
    """A horizontal region of the report holding static texts and text fields."""
    model_config = ConfigDict(frozen=True)

    height: int
    static_texts: List[PositionedItem] = Field(default_factory=list)
    text_fields: List[BoundField] = Field(default_factory=list)

    @property
    def items(self) -> List[PositionedItem]:
        return [*self.static_texts, *self.text_fields]


# 3. REPORT DOCUMENT
class ReportDocument(BaseModel):
    """Complete report definition, ready for the XML writer."""
    model_config = ConfigDict(frozen=True)

    name: str
    page_width: int
    page_height: int
    column_width: int
    left_margin: int
    right_margin: int
    top_margin: int
    bottom_margin: int
    properties: Dict[str, str] = Field(default_factory=dict, description="Report-level <property> entries")
    fields: List[FieldDefinition] = Field(default_factory=list)
    column_header: Optional[Band] = None
    detail_bands: List[Band] = Field(default_factory=list)
