import io
import json
import os
import sys
import tempfile
import unittest
import xml.etree.ElementTree as ET
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest import mock


# Allow importing the project modules when running from another directory.
APP_ROOT = Path(__file__).resolve().parent
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))


import main  # noqa: E402
from config import ConverterConfig  # noqa: E402
from extractor import FALLBACK_TEXT  # noqa: E402
from parser import SourceDocument, extract_pdf_text, load_document, parse_html  # noqa: E402
from pipeline import ConversionError, convert_document  # noqa: E402
from report import JASPER_NAMESPACE  # noqa: E402
from schemas import TableModel  # noqa: E402


def _text_source(text: str) -> SourceDocument:
    return SourceDocument(kind="text", path=Path("input.txt"), text=text)


def _html_source(markup: str) -> SourceDocument:
    return SourceDocument(kind="html", path=Path("input.html"), soup=parse_html(markup))


def _fake_pdf(pages):
    pdf = mock.MagicMock()
    pdf.__enter__.return_value.pages = pages
    return pdf


def _fake_page(fragments, layout_text=""):
    page = mock.MagicMock()
    page.extract_words.return_value = [{"text": f} for f in fragments]
    page.extract_text.return_value = layout_text
    return page


class TestConvertDocument(unittest.TestCase):
    def setUp(self) -> None:
        self.config = ConverterConfig()

    def test_text_source_builds_table_report(self) -> None:
        result = convert_document(_text_source("Name  Age\nAlice  30\nBob  28"), self.config)

        self.assertEqual(result.extracted, TableModel(headers=["Name", "Age"], rows=[["Alice", "30"], ["Bob", "28"]]))
        self.assertEqual(result.metrics.strategy_used, "text")
        self.assertEqual((result.metrics.columns, result.metrics.rows, result.metrics.bands), (2, 2, 3))
        self.assertEqual(result.document.page_width, 1102)
        self.assertEqual(result.warnings, [])

    def test_degenerate_text_still_produces_a_report(self) -> None:
        result = convert_document(_text_source("just prose\nmore prose"), self.config)
        self.assertTrue(result.extracted.is_empty)
        self.assertEqual(result.document.fields, [])
        self.assertEqual(result.document.detail_bands, [])
        self.assertIn("No tabular content detected", result.warnings)
        ET.fromstring(result.to_jrxml(self.config).encode("utf-8"))

    def test_control_characters_do_not_break_the_report(self) -> None:
        result = convert_document(_text_source("Na\x01me  Age\nAlice  3\x020"), self.config)
        root = ET.fromstring(result.to_jrxml(self.config).encode("utf-8"))
        header_texts = root.findall(f"{{{JASPER_NAMESPACE}}}columnHeader//{{{JASPER_NAMESPACE}}}text")
        self.assertEqual([t.text for t in header_texts], ["Name", "Age"])

    def test_html_defaults_to_configured_strategy(self) -> None:
        result = convert_document(_html_source("<h1>Report</h1><table><tr><td>a</td><td>b</td></tr></table>"), self.config)
        self.assertEqual(result.metrics.strategy_used, "html-flow")
        self.assertEqual(result.document.page_width, 595)
        band = result.document.detail_bands[0]
        self.assertEqual([(s.text, s.x, s.y) for s in band.static_texts], [("Report", 0, 0), ("a", 0, 20), ("b", 80, 20)])
        self.assertEqual(result.preview()["items"][0]["text"], "Report")

    def test_html_without_content_gets_placeholder(self) -> None:
        result = convert_document(_html_source("<div>nothing here</div>"), self.config)
        texts = [s.text for s in result.document.detail_bands[0].static_texts]
        self.assertEqual(texts, [FALLBACK_TEXT])

    def test_html_table_strategy(self) -> None:
        source = _html_source("<table><tr><td>a</td><td>b</td></tr><tr><td>c</td><td>d</td></tr></table>")
        result = convert_document(source, self.config, strategy="html-table")
        band = result.document.detail_bands[0]
        self.assertEqual([(s.x, s.y, s.width) for s in band.static_texts],
                         [(0, 0, 100), (100, 0, 100), (0, 20, 100), (100, 20, 100)])
        self.assertEqual(result.preview(), {"rows": [["a", "b"], ["c", "d"]]})

    def test_html_header_strategy_builds_fields(self) -> None:
        source = _html_source("<table><tr><th>Item</th><th>Qty</th></tr><tr><td>Apples</td><td>3</td></tr></table>")
        result = convert_document(source, self.config, strategy="html-header", report_name="stock")
        self.assertEqual([f.name for f in result.document.fields], ["Field1", "Field2"])
        self.assertEqual(result.document.name, "stock")
        self.assertEqual(result.document.page_width, 595)
        self.assertEqual(result.preview(), {"headers": ["Item", "Qty"], "rows": [["Apples", "3"]]})

    def test_text_strategy_on_html_fails(self) -> None:
        with self.assertRaises(ConversionError) as ctx:
            convert_document(_html_source("<p>x</p>"), self.config, strategy="text")
        self.assertIsInstance(ctx.exception.__cause__, ValueError)
        self.assertEqual(ctx.exception.metrics.source_kind, "html")

    def test_unknown_strategy_fails(self) -> None:
        with self.assertRaises(ConversionError):
            convert_document(_text_source("a  b"), self.config, strategy="ocr")

    def test_debug_input_is_saved(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = ConverterConfig(debug_enabled=True, debug_dir=str(Path(tmp) / "debug"))
            convert_document(_text_source("A  B\n1  2"), config)
            saved = list((Path(tmp) / "debug").glob("input_*.txt"))
            self.assertEqual(len(saved), 1)
            self.assertEqual(saved[0].read_text(encoding="utf-8"), "A  B\n1  2")


class TestLoadDocument(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_document(str(self.tmp / "nope.pdf"))

    def test_unsupported_suffix(self) -> None:
        path = self.tmp / "form.docx"
        path.write_bytes(b"PK")
        with self.assertRaises(ValueError):
            load_document(str(path))

    def test_text_and_html_files(self) -> None:
        txt = self.tmp / "list.txt"
        txt.write_text("A  B\n", encoding="utf-8")
        html = self.tmp / "page.HTML"
        html.write_text("<p>hi</p>", encoding="utf-8")

        text_doc = load_document(str(txt))
        self.assertEqual((text_doc.kind, text_doc.text), ("text", "A  B\n"))
        html_doc = load_document(str(html))
        self.assertTrue(html_doc.is_html)
        self.assertEqual(html_doc.soup.p.get_text(), "hi")

    def test_byte_order_mark_is_not_part_of_first_header(self) -> None:
        txt = self.tmp / "bom.txt"
        txt.write_bytes("\ufeffName  Age\nAlice  30\n".encode("utf-8"))
        result = convert_document(load_document(str(txt)), ConverterConfig())
        self.assertEqual(result.extracted.headers, ("Name", "Age"))

    def test_pdf_fragments_are_joined_per_page(self) -> None:
        pdf = _fake_pdf([_fake_page(["Name  Age"]), _fake_page(["Alice  30", "Bob  28"])])
        with mock.patch("parser.pdfplumber.open", return_value=pdf):
            text = extract_pdf_text("report.pdf")
        self.assertEqual(text, "Name  Age\nAlice  30 Bob  28\n")

    def test_pdf_layout_mode(self) -> None:
        pdf = _fake_pdf([_fake_page([], layout_text="Name    Age\nAlice   30")])
        with mock.patch("parser.pdfplumber.open", return_value=pdf):
            text = extract_pdf_text("report.pdf", text_mode="layout")
        self.assertEqual(text, "Name    Age\nAlice   30\n")

    def test_unreadable_pdf(self) -> None:
        path = self.tmp / "broken.pdf"
        path.write_bytes(b"not a pdf")
        with mock.patch("parser.pdfplumber.open", side_effect=Exception("no /Root object")):
            with self.assertRaises(ValueError) as ctx:
                load_document(str(path))
        self.assertIn("Could not read PDF", str(ctx.exception))

    def test_pdf_document_end_to_end(self) -> None:
        path = self.tmp / "staff.pdf"
        path.write_bytes(b"%PDF-1.4")
        pdf = _fake_pdf([_fake_page(["Name  Age"]), _fake_page(["Alice  30"])])
        with mock.patch("parser.pdfplumber.open", return_value=pdf):
            source = load_document(str(path))
        result = convert_document(source, ConverterConfig())
        self.assertEqual(source.kind, "pdf")
        self.assertEqual(result.extracted.rows, (("Alice", "30"),))
        self.assertEqual(result.document.page_width, 1102)


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.input = self.tmp / "staff.txt"
        self.input.write_text("Name  Age\nAlice  30\n", encoding="utf-8")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_writes_jrxml_beside_input(self) -> None:
        out = io.StringIO()
        with redirect_stdout(out):
            main.main([str(self.input), "--name", "staff"])

        report = self.tmp / "staff.jrxml"
        self.assertTrue(report.exists())
        root = ET.parse(report).getroot()
        self.assertEqual(root.tag, f"{{{JASPER_NAMESPACE}}}jasperReport")
        self.assertEqual(root.get("name"), "staff")
        self.assertIn("Report saved to", out.getvalue())

    def test_output_option(self) -> None:
        target = self.tmp / "out" / "custom.jrxml"
        with redirect_stdout(io.StringIO()):
            main.main([str(self.input), "-o", str(target)])
        self.assertTrue(target.exists())

    def test_preview_prints_table_json(self) -> None:
        out = io.StringIO()
        with redirect_stdout(out):
            main.main([str(self.input), "--preview"])
        self.assertEqual(json.loads(out.getvalue()), {"headers": ["Name", "Age"], "rows": [["Alice", "30"]]})
        self.assertFalse((self.tmp / "staff.jrxml").exists())

    def test_missing_file_exits_with_error(self) -> None:
        err = io.StringIO()
        with redirect_stderr(err), self.assertRaises(SystemExit) as ctx:
            main.main([os.path.join(self._tmp.name, "missing.pdf")])
        self.assertEqual(ctx.exception.code, 1)
        self.assertIn("Document not found", err.getvalue())

    def test_wrong_strategy_for_input_exits_with_error(self) -> None:
        err = io.StringIO()
        with redirect_stderr(err), self.assertRaises(SystemExit) as ctx:
            main.main([str(self.input), "--strategy", "html-flow"])
        self.assertEqual(ctx.exception.code, 1)
        self.assertIn("needs an HTML document", err.getvalue())

    def test_unwritable_output_exits_with_error(self) -> None:
        err = io.StringIO()
        with redirect_stderr(err), redirect_stdout(io.StringIO()), self.assertRaises(SystemExit) as ctx:
            main.main([str(self.input), "-o", str(self.tmp)])
        self.assertEqual(ctx.exception.code, 1)
        self.assertIn("Unexpected Error", err.getvalue())


if __name__ == "__main__":
    unittest.main()
