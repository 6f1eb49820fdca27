import os
import sys
import json
import tempfile
import time
from pathlib import Path
from http.server import HTTPServer, BaseHTTPRequestHandler
from urllib.parse import urlparse, parse_qs

from config import DEFAULT_CONFIG
from parser import load_document
from pipeline import convert_document, ConversionError
from report import XML_MIME_TYPE, DEFAULT_FILENAME

# Auto-reload on file changes
try:
    from watchdog.observers import Observer
    from watchdog.events import FileSystemEventHandler
    WATCHDOG_AVAILABLE = True
except ImportError:
    WATCHDOG_AVAILABLE = False
    print("  Install 'watchdog' for auto-reload: pip install watchdog")

API_ROUTES = ('/api/convert', '/api/parse')


class BadRequest(Exception):
    """The upload cannot be converted as sent."""


class ConverterHandler(BaseHTTPRequestHandler):
    """HTTP handler with API endpoints for document conversion.

    Clients POST the raw file bytes as the request body and name the file in
    the ``filename`` query parameter so its type can be detected.
    """

    config = DEFAULT_CONFIG

    @property
    def cors_origin(self) -> str:
        return os.getenv("FRONTEND_ORIGIN", "*")

    def _set_cors_headers(self):
        self.send_header('Access-Control-Allow-Origin', self.cors_origin)
        self.send_header('Vary', 'Origin')
        self.send_header('Access-Control-Allow-Headers', 'Content-Type, Authorization')
        self.send_header('Access-Control-Allow-Methods', 'POST, OPTIONS')
        self.send_header('Access-Control-Expose-Headers', 'Content-Disposition')

    def do_OPTIONS(self):
        # CORS preflight support
        parsed_url = urlparse(self.path)
        if parsed_url.path in API_ROUTES:
            self.send_response(204)
            self._set_cors_headers()
            self.end_headers()
        else:
            self.send_error(404, "Not Found")

    def do_POST(self):
        """Handle POST requests for file upload."""
        parsed_url = urlparse(self.path)
        if parsed_url.path not in API_ROUTES:
            self.send_error(404, "Not Found")
            return

        query_params = {k: v[0] for k, v in parse_qs(parsed_url.query).items()}
        try:
            if parsed_url.path == '/api/convert':
                self.handle_convert(query_params)
            else:
                self.handle_parse(query_params)
        except BadRequest as e:
            self._send_json(400, {"error": str(e)})
        except ConversionError as e:
            status = 400 if isinstance(e.__cause__, ValueError) else 500
            print(f"✗ Error: {e}")
            self._send_json(status, {"error": str(e)})
        except (FileNotFoundError, ValueError) as e:
            print(f"✗ Error: {e}")
            self._send_json(400, {"error": str(e)})
        except Exception as e:
            print(f"✗ Error: {e}")
            self._send_json(500, {"error": str(e)})

    def handle_convert(self, params: dict):
        """Convert the uploaded document and answer with the JRXML file."""
        result = self._run_pipeline(params)
        body = result.to_jrxml(self.config).encode("utf-8")

        self.send_response(200)
        self._set_cors_headers()
        self.send_header('Content-Type', f'{XML_MIME_TYPE}; charset=utf-8')
        self.send_header('Content-Disposition', f'attachment; filename="{DEFAULT_FILENAME}"')
        self.send_header('Content-Length', str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def handle_parse(self, params: dict):
        """Answer with the extracted table/items as JSON, without generating a report."""
        result = self._run_pipeline(params)
        self._send_json(200, {"preview": result.preview(), "warnings": result.warnings})

    def _read_upload(self) -> bytes:
        length = int(self.headers.get('Content-Length') or 0)
        if length <= 0:
            raise BadRequest("No file supplied")
        return self.rfile.read(length)

    def _run_pipeline(self, params: dict):
        filename = params.get('filename', '')
        file_data = self._read_upload()
        if not filename:
            raise BadRequest("Missing 'filename' query parameter")

        # Save to temp file
        suffix = Path(filename).suffix
        with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
            tmp.write(file_data)
            tmp_path = tmp.name

        try:
            print(f"Converting: {filename}")
            source = load_document(tmp_path, pdf_text_mode=self.config.pdf_text_mode)
            result = convert_document(
                source,
                self.config,
                strategy=params.get('strategy'),
                report_name=params.get('name'),
            )
            print(f"✓ Converted successfully: {filename} ({result.metrics.strategy_used})")
            return result
        finally:
            # Clean up temp file
            os.unlink(tmp_path)

    def _send_json(self, status: int, payload: dict):
        body = json.dumps(payload, indent=2).encode()
        self.send_response(status)
        self._set_cors_headers()
        self.send_header('Content-Type', 'application/json')
        self.send_header('Content-Length', str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        """Custom logging."""
        if args and isinstance(args[0], str) and '/api/' in args[0]:
            print(f"API: {args[0]}")


class SourceChangeHandler(FileSystemEventHandler if WATCHDOG_AVAILABLE else object):
    """Restart the server when one of the project's modules is saved."""

    DEBOUNCE_SECONDS = 1.0

    def __init__(self, on_change):
        self.on_change = on_change
        self._seen = {}

    def on_modified(self, event):
        path = Path(event.src_path)
        if path.suffix != '.py':
            return
        now = time.monotonic()
        last = self._seen.get(path)
        if last is not None and now - last < self.DEBOUNCE_SECONDS:
            return
        self._seen[path] = now
        print(f"\n Detected change in {path.name}")
        self.on_change()


def _watch_sources(server: HTTPServer):
    """Start a watchdog observer that re-executes the process on module changes."""
    observer = Observer()

    def restart():
        print(" Restarting server...")
        server.shutdown()
        observer.stop()
        os.execv(sys.executable, [sys.executable] + sys.argv)

    observer.schedule(SourceChangeHandler(restart), path=str(Path(__file__).parent), recursive=False)
    observer.start()
    print(" Watching for file changes...")
    return observer


def run_server(port=8000, host='localhost', auto_reload=True):
    """Serve the conversion API until interrupted.

    Auto-reload needs watchdog and is meant for local development only.
    """
    server = HTTPServer((host, port), ConverterHandler)
    reloading = auto_reload and WATCHDOG_AVAILABLE

    print(f"JRXML Converter listening on http://{host}:{port}")
    print("  POST /api/convert?filename=<file>   -> report.jrxml")
    print("  POST /api/parse?filename=<file>     -> extracted table as JSON")
    print(f"  Auto-reload: {'ENABLED' if reloading else 'DISABLED'}  (Ctrl+C to stop)")

    observer = _watch_sources(server) if reloading else None

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\n  Server stopped.")
    finally:
        if observer:
            observer.stop()
            observer.join()
        server.server_close()


def main():
    # PORT is set by hosting platforms; bind to all interfaces and skip reload there.
    port = os.getenv('PORT')
    host = os.getenv('HOST', '0.0.0.0' if port else 'localhost')
    run_server(port=int(port or 8000), host=host, auto_reload=not port)


if __name__ == '__main__':
    main()
