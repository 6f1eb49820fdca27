import argparse
import sys
import json
import logging
from dataclasses import replace
from pathlib import Path

# Fix Windows console encoding
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding='utf-8')
    sys.stderr.reconfigure(encoding='utf-8')

from config import DEFAULT_CONFIG, PDF_TEXT_MODES
from parser import load_document
from pipeline import convert_document, ConversionError, PipelineResult, STRATEGIES
from report import REPORT_SUFFIX


def process_document(
    file_path: str,
    strategy: str = None,
    report_name: str = None,
    pdf_text_mode: str = None,
    verbose: bool = False,
) -> PipelineResult:

    config = DEFAULT_CONFIG
    if pdf_text_mode:
        config = replace(config, pdf_text_mode=pdf_text_mode)

    if verbose:
        print(f"[1/2] Reading document: {file_path}")

    # Step 1: Load the document (PDF text, HTML tree or plain text)
    source = load_document(file_path, pdf_text_mode=config.pdf_text_mode)

    if verbose:
        print(f"[2/2] Converting {source.kind.upper()} document ({source.size:,} chars)")

    # Step 2: Extract and lay out
    return convert_document(source, config, strategy=strategy, report_name=report_name)


def main(argv=None):
    """Main entry point for CLI usage."""
    parser = argparse.ArgumentParser(
        description="Convert PDF/HTML documents to JasperReports JRXML layouts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    jrxml-convert invoice.pdf
    jrxml-convert page.html --strategy html-table -o out/page.jrxml
    jrxml-convert listing.txt --preview
        """
    )

    parser.add_argument(
        "file_path",
        help="Path to the document file (PDF, HTML or TXT)"
    )
    parser.add_argument(
        "-o", "--output",
        help="Output path (default: input name with .jrxml extension)"
    )
    parser.add_argument(
        "-s", "--strategy",
        choices=STRATEGIES,
        help="Extraction strategy (default: text for PDF/TXT, configured HTML strategy for HTML)"
    )
    parser.add_argument(
        "-n", "--name",
        help="Report name written into the JRXML"
    )
    parser.add_argument(
        "--pdf-text-mode",
        choices=PDF_TEXT_MODES,
        help="How PDF page text is read"
    )
    parser.add_argument(
        "--preview",
        action="store_true",
        help="Print the extracted table/items as JSON instead of writing a report"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Print intermediate processing steps"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(message)s",
    )

    try:
        result = process_document(
            args.file_path,
            strategy=args.strategy,
            report_name=args.name,
            pdf_text_mode=args.pdf_text_mode,
            verbose=args.verbose,
        )

        if args.preview:
            print(json.dumps(result.preview(), indent=2, ensure_ascii=False))
            return

        for warning in result.warnings:
            print(f"  ⚠ {warning}", file=sys.stderr)

        output_path = Path(args.output) if args.output else Path(args.file_path).with_suffix(REPORT_SUFFIX)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w", encoding="utf-8") as f:
            f.write(result.to_jrxml())

        print(f"✓ Report saved to: {output_path}")

    except FileNotFoundError as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        sys.exit(1)
    except ConversionError as e:
        print(f"✗ Conversion Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"✗ Unexpected Error: {type(e).__name__}: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
