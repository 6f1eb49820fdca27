"""Conversion pipeline orchestration."""

from dataclasses import dataclass, field
from typing import Optional, List, Union
from pathlib import Path
import logging
import time

from schemas import ReportDocument, TableModel, PositionedItem
from config import ConverterConfig, DEFAULT_CONFIG, HTML_STRATEGIES
from parser import SourceDocument
from result import ExtractionResult
from extractor import (
    extract_text_table, extract_html_rows, extract_html_table, extract_html_flow,
)
from mapper import (
    table_to_fields, build_column_header, build_detail_bands, rows_to_band, flow_to_band,
)
from report import assemble_report, to_jrxml

logger = logging.getLogger(__name__)

STRATEGIES = ("text",) + HTML_STRATEGIES

# What an extraction strategy hands to the layout generator.
Extracted = Union[TableModel, List[List[str]], List[PositionedItem]]


@dataclass
class PipelineMetrics:
    """Metrics collected during conversion."""
    source_kind: str = ""
    strategy_used: str = ""
    input_chars: int = 0
    columns: int = 0
    rows: int = 0
    items: int = 0
    bands: int = 0
    duration_seconds: float = 0.0


@dataclass
class PipelineResult:
    """Result of the conversion pipeline."""
    document: ReportDocument
    extracted: Extracted
    metrics: PipelineMetrics
    warnings: List[str] = field(default_factory=list)

    def to_jrxml(self, config: Optional[ConverterConfig] = None) -> str:
        return to_jrxml(self.document, config)

    def preview(self) -> dict:
        """JSON-ready view of the extracted model."""
        if isinstance(self.extracted, TableModel):
            return self.extracted.model_dump(mode="json")
        if self.extracted and isinstance(self.extracted[0], PositionedItem):
            return {"items": [item.model_dump() for item in self.extracted]}
        return {"rows": self.extracted}


def choose_strategy(source: SourceDocument, requested: Optional[str], config: ConverterConfig) -> str:
    """Pick the extraction strategy for the source kind."""
    if requested and requested not in STRATEGIES:
        raise ValueError(f"Unknown strategy: {requested}. Use one of: {', '.join(STRATEGIES)}")
    if source.is_html:
        return requested or config.html_strategy
    return requested or "text"


class ConversionPipeline:

    def __init__(
        self,
        source: SourceDocument,
        config: ConverterConfig = DEFAULT_CONFIG,
        strategy: Optional[str] = None,
        report_name: Optional[str] = None,
    ):
        self.source = source
        self.config = config
        self.requested_strategy = strategy
        self.report_name = report_name
        self.metrics = PipelineMetrics(source_kind=source.kind)
        self.warnings: List[str] = []

    def run(self) -> PipelineResult:
        """Execute the full conversion."""
        start_time = time.time()

        try:
            strategy = choose_strategy(self.source, self.requested_strategy, self.config)
            self.metrics.strategy_used = strategy
            self.metrics.input_chars = self.source.size
            self._log(f"Document: {self.source.path.name} ({self.source.kind}, {self.metrics.input_chars:,} chars)")
            self._log(f"Strategy: {strategy}")
            self._save_debug_input()

            # Step 1: Extract
            extraction = self._extract(strategy)
            self.warnings.extend(extraction.warnings)
            extracted = extraction.unwrap()

            # Step 2: Layout + assemble
            document = self._build_document(strategy, extracted)

            self.metrics.bands = len(document.detail_bands) + (1 if document.column_header else 0)
            self.metrics.duration_seconds = time.time() - start_time
            for warning in self.warnings:
                self._log(f"  ⚠ {warning}")
            self._log(f"✓ Built {self.metrics.bands} band(s) in {self.metrics.duration_seconds:.3f}s")

            return PipelineResult(
                document=document,
                extracted=extracted,
                metrics=self.metrics,
                warnings=self.warnings,
            )

        except Exception as e:
            self.metrics.duration_seconds = time.time() - start_time
            raise ConversionError(f"Pipeline failed: {e}", metrics=self.metrics) from e

    def _extract(self, strategy: str) -> ExtractionResult[Extracted]:
        if strategy == "text":
            if self.source.is_html:
                return ExtractionResult.fail("The text strategy needs a PDF or plain-text document")
            result = extract_text_table(self.source.text or "")
            self.metrics.columns = len(result.value.headers)
            self.metrics.rows = len(result.value.rows)
            return result

        if not self.source.is_html:
            return ExtractionResult.fail(f"The {strategy} strategy needs an HTML document")

        if strategy == "html-header":
            result = extract_html_table(self.source.soup)
            self.metrics.columns = len(result.value.headers)
            self.metrics.rows = len(result.value.rows)
            return result

        if strategy == "html-table":
            rows = extract_html_rows(self.source.soup)
            self.metrics.rows = len(rows)
            self.metrics.items = sum(len(row) for row in rows)
            result = ExtractionResult.ok(rows)
            if not rows:
                result.warn("No HTML table rows found")
            return result

        items = extract_html_flow(self.source.soup, self.config)
        self.metrics.items = len(items)
        return ExtractionResult.ok(items)

    def _build_document(self, strategy: str, extracted: Extracted) -> ReportDocument:
        """Run the layout generator for the strategy and assemble the report."""
        if isinstance(extracted, TableModel):
            self._log(f"Table: {len(extracted.headers)} column(s), {len(extracted.rows)} row(s)")
            return assemble_report(
                self.source.kind,
                detail_bands=build_detail_bands(extracted, self.config),
                fields=table_to_fields(extracted),
                column_header=build_column_header(extracted, self.config),
                config=self.config,
                name=self.report_name,
            )

        if strategy == "html-table":
            band = rows_to_band(extracted, self.config)
        else:
            band = flow_to_band(extracted, self.config)
        self._log(f"Detail band: {len(band.items)} item(s)")
        return assemble_report(
            self.source.kind,
            detail_bands=[band],
            config=self.config,
            name=self.report_name,
        )

    def _save_debug_input(self) -> None:
        """Save the extractor input for debugging if enabled."""
        if not self.config.debug_enabled:
            return

        debug_dir = Path(self.config.debug_dir)
        debug_dir.mkdir(exist_ok=True)
        timestamp = time.strftime("%Y%m%d_%H%M%S")
        if self.source.is_html:
            path = debug_dir / f"input_{timestamp}.html"
            path.write_text(str(self.source.soup), encoding="utf-8")
        else:
            path = debug_dir / f"input_{timestamp}.txt"
            path.write_text(self.source.text or "", encoding="utf-8")
        self._log(f"💾 Saved debug input to: {path}")

    def _log(self, message: str) -> None:
        """Log a message."""
        logger.info(f"[Converter] {message}")


class ConversionError(Exception):
    """Raised when conversion fails."""
    def __init__(self, message: str, metrics: Optional[PipelineMetrics] = None):
        super().__init__(message)
        self.metrics = metrics


def convert_document(
    source: SourceDocument,
    config: ConverterConfig = DEFAULT_CONFIG,
    strategy: Optional[str] = None,
    report_name: Optional[str] = None,
) -> PipelineResult:
    """Convert a loaded document into a report definition."""
    return ConversionPipeline(source, config, strategy=strategy, report_name=report_name).run()
