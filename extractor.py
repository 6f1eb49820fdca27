import re
import logging
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from schemas import TableModel, PositionedItem
from result import ExtractionResult
from config import ConverterConfig, DEFAULT_CONFIG

logger = logging.getLogger(__name__)

# Columns are separated by two or more whitespace characters.
COLUMN_SEPARATOR = re.compile(r"\s{2,}")

FLOW_TEXT_TAGS = {"h1", "h2", "p"}
CELL_TAGS = ["td", "th"]
FALLBACK_TEXT = "No content found in document"


def display_text(value: str) -> str:
    """Empty values render as a single space so the element never collapses."""
    return value if value else " "


# 1. PLAIN TEXT
def _content_lines(text: str) -> List[str]:
    return [line for line in text.split("\n") if line.strip()]


def tokenize_lines(text: str) -> List[List[str]]:
    """
    Split text into lines and lines into columns.

    Blank lines are dropped. Each remaining line is split on whitespace runs
    of length two or more and every token is trimmed. Lines that yield a
    single token have no column separator and are left out.
    """
    tokenized = []
    for line in _content_lines(text):
        columns = [col.strip() for col in COLUMN_SEPARATOR.split(line)]
        if len(columns) > 1:
            tokenized.append(columns)
    return tokenized


def build_table(lines: List[List[str]]) -> TableModel:
    """First tokenized line is the header row, the rest are data rows."""
    if not lines:
        return TableModel()
    return TableModel(headers=lines[0], rows=lines[1:])


def extract_text_table(text: str) -> ExtractionResult[TableModel]:
    """Tokenize text and build the table, reporting skipped lines as warnings."""
    content_lines = _content_lines(text)
    tokenized = tokenize_lines(text)
    table = build_table(tokenized)

    result = ExtractionResult.ok(table)
    skipped = len(content_lines) - len(tokenized)
    if skipped:
        result.warn(f"{skipped} line(s) had no column separator and were skipped")
    if table.is_empty:
        result.warn("No tabular content detected")

    logger.debug("Tokenized %d of %d lines into %d columns",
                 len(tokenized), len(content_lines), len(table.headers))
    return result


# 2. HTML
def _cell_texts(row: Tag) -> List[str]:
    return [cell.get_text().strip() for cell in row.find_all(CELL_TAGS, recursive=False)]


def extract_html_rows(soup: BeautifulSoup) -> List[List[str]]:
    """Every <tr> inside any <table>, as the trimmed text of its direct td/th cells."""
    return [_cell_texts(row) for row in soup.select("table tr")]


def extract_html_table(soup: BeautifulSoup) -> ExtractionResult[TableModel]:
    """Read HTML table rows and treat the first one as the header row."""
    rows = extract_html_rows(soup)
    table = build_table([row for row in rows if row])
    result = ExtractionResult.ok(table)
    if table.is_empty:
        result.warn("No HTML table rows found")
    return result


def _flow_root(soup: BeautifulSoup) -> Tag:
    return soup.body if soup.body is not None else soup


def extract_html_flow(
    soup: BeautifulSoup,
    config: Optional[ConverterConfig] = None,
) -> List[PositionedItem]:
    """
    Walk the body's direct children into positioned text items.

    Headings and paragraphs take one row at column 0. Tables take one row per
    <tr>, with cells placed left to right. Other nodes are ignored. The
    result always holds at least one item: when nothing is recognized a
    placeholder is emitted at the top of the page.
    """
    config = config or DEFAULT_CONFIG
    cell_width = config.flow_cell_width
    height = config.item_height

    items: List[PositionedItem] = []
    y = 0

    for node in _flow_root(soup).children:
        if not isinstance(node, Tag):
            continue

        if node.name in FLOW_TEXT_TAGS:
            items.append(PositionedItem(
                text=display_text(node.get_text().strip()),
                x=0, y=y, width=cell_width, height=height,
            ))
            y += config.row_increment

        elif node.name == "table":
            for row in node.find_all("tr"):
                for col, text in enumerate(_cell_texts(row)):
                    items.append(PositionedItem(
                        text=display_text(text),
                        x=col * cell_width, y=y, width=cell_width, height=height,
                    ))
                y += config.row_increment

    if not items:
        logger.info("No recognized block elements, emitting placeholder")
        items.append(PositionedItem(text=FALLBACK_TEXT, x=0, y=0, width=cell_width, height=height))

    return items
