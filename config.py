
from dataclasses import dataclass, field
from pathlib import Path
import os

from dotenv import load_dotenv

load_dotenv(Path(__file__).parent / ".env")


@dataclass(frozen=True)
class PageGeometry:
    """Page metrics written on the jasperReport root element."""
    page_width: int
    page_height: int
    column_width: int
    left_margin: int = 20
    right_margin: int = 20
    top_margin: int = 20
    bottom_margin: int = 20


@dataclass(frozen=True)
class CellSize:
    width: int
    height: int


# Plain-text / table reports are laid out landscape-wide,
# HTML-derived reports on a portrait A4 page.
TEXT_GEOMETRY = PageGeometry(page_width=1102, page_height=842, column_width=1062)
HTML_GEOMETRY = PageGeometry(page_width=595, page_height=842, column_width=515)

HTML_STRATEGIES = ("html-flow", "html-table", "html-header")
PDF_TEXT_MODES = ("fragments", "layout")


@dataclass(frozen=True)
class ConverterConfig:
    """Configuration for the conversion pipeline."""

    # Report metadata
    report_name: str = "test"
    default_data_adapter: str = "One Empty Record"

    # Page geometry per source kind
    text_geometry: PageGeometry = TEXT_GEOMETRY
    html_geometry: PageGeometry = HTML_GEOMETRY

    # Table layout
    header_band_height: int = 40
    header_cell: CellSize = field(default_factory=lambda: CellSize(100, 30))
    detail_band_height: int = 25
    detail_cell: CellSize = field(default_factory=lambda: CellSize(100, 20))

    # HTML layout
    html_band_height: int = 800
    html_table_cell_width: int = 100
    flow_cell_width: int = 80
    item_height: int = 20
    row_increment: int = 20

    # Detail field styling
    font_name: str = "Arial"
    box_line_width: str = "0.3"
    box_line_style: str = "Solid"
    box_line_color: str = "#000000"

    # Input handling
    html_strategy: str = "html-flow"
    pdf_text_mode: str = "fragments"

    # Debug
    debug_enabled: bool = False
    debug_dir: str = "debug_input"

    def geometry_for(self, source_kind: str) -> PageGeometry:
        """Page geometry for a source kind ('text', 'pdf' or 'html')."""
        if source_kind == "html":
            return self.html_geometry
        return self.text_geometry


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("1", "true", "yes")


def _env_choice(name: str, choices: tuple, default: str) -> str:
    value = os.getenv(name, "").strip().lower()
    return value if value in choices else default


def get_default_config() -> ConverterConfig:
    """Get default configuration based on environment."""
    return ConverterConfig(
        report_name=os.getenv("JRXML_REPORT_NAME", "").strip() or "test",
        html_strategy=_env_choice("JRXML_HTML_STRATEGY", HTML_STRATEGIES, "html-flow"),
        pdf_text_mode=_env_choice("JRXML_PDF_TEXT_MODE", PDF_TEXT_MODES, "fragments"),
        debug_enabled=_env_flag("JRXML_DEBUG"),
        debug_dir=os.getenv("JRXML_DEBUG_DIR", "debug_input"),
    )


# Global default (can be overridden)
DEFAULT_CONFIG = get_default_config()
