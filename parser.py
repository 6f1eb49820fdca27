
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import pdfplumber
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

PDF_SUFFIXES = {".pdf"}
HTML_SUFFIXES = {".html", ".htm"}
TEXT_SUFFIXES = {".txt"}
SUPPORTED_SUFFIXES = PDF_SUFFIXES | HTML_SUFFIXES | TEXT_SUFFIXES


@dataclass
class SourceDocument:
    """A loaded input document in the form the extraction strategies consume.

    PDF and plain-text inputs carry ``text``; HTML inputs carry the parsed ``soup``.
    """
    kind: str  # 'pdf', 'text' or 'html'
    path: Path
    text: Optional[str] = None
    soup: Optional[BeautifulSoup] = None

    @property
    def is_html(self) -> bool:
        return self.kind == "html"

    @property
    def size(self) -> int:
        """Characters of input handed to the extractors."""
        if self.soup is not None:
            return len(str(self.soup))
        return len(self.text or "")


def detect_kind(file_path: str) -> str:
    suffix = Path(file_path).suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ValueError(
            f"Unsupported file format: {suffix or '(none)'}. Use PDF, HTML or TXT."
        )
    if suffix in PDF_SUFFIXES:
        return "pdf"
    if suffix in HTML_SUFFIXES:
        return "html"
    return "text"


def _page_fragments(page) -> List[str]:
    words = page.extract_words(keep_blank_chars=True)
    return [w["text"] for w in words]


def extract_pdf_text(file_path: str, text_mode: str = "fragments") -> str:
    """
    Read a PDF into plain text, one page per line group.

    In ``fragments`` mode each page's word/string fragments are joined with
    single spaces. In ``layout`` mode pdfplumber renders the page with its
    horizontal spacing preserved, which keeps positional column gaps as runs
    of spaces. Every page is followed by a newline.
    """
    pages = []
    try:
        with pdfplumber.open(file_path) as pdf:
            logger.info("PDF has %d pages", len(pdf.pages))
            for page in pdf.pages:
                if text_mode == "layout":
                    page_text = page.extract_text(layout=True) or ""
                else:
                    page_text = " ".join(_page_fragments(page))
                pages.append(page_text + "\n")
    except Exception as e:
        raise ValueError(f"Could not read PDF {file_path}: {e}") from e

    return "".join(pages)


def parse_html(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup, "html.parser")


def load_document(file_path: str, pdf_text_mode: str = "fragments") -> SourceDocument:
    """Load a PDF, HTML or plain-text file for conversion."""
    path = Path(file_path)

    if not path.exists():
        raise FileNotFoundError(f"Document not found: {file_path}")

    kind = detect_kind(file_path)

    if kind == "pdf":
        return SourceDocument(kind=kind, path=path, text=extract_pdf_text(file_path, pdf_text_mode))

    # utf-8-sig drops a leading byte order mark so it never reaches the first header.
    content = path.read_text(encoding="utf-8-sig", errors="replace")
    if kind == "html":
        return SourceDocument(kind=kind, path=path, soup=parse_html(content))
    return SourceDocument(kind=kind, path=path, text=content)


if __name__ == "__main__":
    # Quick test
    import sys
    if len(sys.argv) > 1:
        doc = load_document(sys.argv[1])
        print(doc.soup.prettify() if doc.is_html else doc.text)
