"""
Fake statistics-channel server for testing without a name server.

    python -m bindstat.mock.fake_bind_server
    bindstat --url http://localhost:8053/xml/v3
"""

from __future__ import annotations

from http.server import BaseHTTPRequestHandler, HTTPServer

from bindstat.mock.generator import MockBindServer

_server = MockBindServer(seed=42)


def _render(path: str):
    path = path.rstrip("/") or "/"
    if path in ("/", "/xml/v2"):
        return _server.v2_document()
    if path == "/xml/v3":
        return _server.v3_document()
    if path == "/xml/v3/server":
        return _server.v3_document(subset="server")
    if path == "/xml/v3/mem":
        return _server.v3_document(subset="mem")
    return None


class _StatsHandler(BaseHTTPRequestHandler):
    def do_GET(self):
        body = _render(self.path)
        if body is None:
            self.send_response(404)
            self.end_headers()
            return
        self.send_response(200)
        self.send_header("Content-Type", "text/xml; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass  # Suppress request logging noise


def make_server(host: str = "127.0.0.1", port: int = 8053) -> HTTPServer:
    return HTTPServer((host, port), _StatsHandler)


def run_fake_server(host: str = "127.0.0.1", port: int = 8053):
    server = make_server(host, port)
    print(f"Fake statistics channel running at http://{host}:{port}/ (v2) and /xml/v3")
    print("Press Ctrl+C to stop.\n")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    server.server_close()
    print("\nServer stopped.")


if __name__ == "__main__":
    run_fake_server()
