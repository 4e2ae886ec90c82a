import http.server
import re
import sys
import threading
from pathlib import Path
from typing import Set

import pytest

# Ensure src is on sys.path so tests can import the `tile_fetcher` package.
SRC = Path(__file__).resolve().parents[1] / 'src'
sys.path.insert(0, str(SRC))


# 1x1 PNG
PNG_BYTES = bytes([
    0x89, 0x50, 0x4e, 0x47, 0x0d, 0x0a, 0x1a, 0x0a,
    0x00, 0x00, 0x00, 0x0d, 0x49, 0x48, 0x44, 0x52,
    0x00, 0x00, 0x00, 0x01, 0x00, 0x00, 0x00, 0x01,
    0x08, 0x02, 0x00, 0x00, 0x00, 0x90, 0x77, 0x53,
    0xde, 0x00, 0x00, 0x00, 0x0c, 0x49, 0x44, 0x41,
    0x54, 0x08, 0xd7, 0x63, 0xf8, 0xcf, 0xc0, 0x00,
    0x00, 0x03, 0x01, 0x01, 0x00, 0x18, 0xdd, 0x8d,
    0xb4, 0x00, 0x00, 0x00, 0x00, 0x49, 0x45, 0x4e,
    0x44, 0xae, 0x42, 0x60, 0x82,
])

TILE_PATH = re.compile(r'^/(\d+)/(\d+)/(\d+)\.png$')


class MockTileServer:
    """Local tile server answering /{z}/{x}/{y}.png with a PNG"""

    def __init__(self):
        self.missing: Set[str] = set()
        self.not_images: Set[str] = set()
        self.requests = []
        self._lock = threading.Lock()
        self._server = http.server.ThreadingHTTPServer(('127.0.0.1', 0), self._create_handler())
        self._server.daemon_threads = True
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)

    @property
    def base_url(self) -> str:
        host, port = self._server.server_address[:2]
        return f"http://{host}:{port}"

    @property
    def tile_url(self) -> str:
        return self.base_url + "/{z}/{x}/{y}.png"

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._server.shutdown()
        self._server.server_close()

    def _create_handler(self):
        tile_server = self

        class TileRequestHandler(http.server.BaseHTTPRequestHandler):
            def do_GET(self):
                with tile_server._lock:
                    tile_server.requests.append(self.path)

                match = TILE_PATH.match(self.path)
                tile_key = self.path.lstrip('/').rsplit('.', 1)[0]
                if not match or tile_key in tile_server.missing:
                    self._respond(404, b"Not Found", 'text/plain')
                elif tile_key in tile_server.not_images:
                    self._respond(200, b"<html></html>", 'text/html')
                else:
                    self._respond(200, PNG_BYTES, 'image/png')

            def _respond(self, status: int, body: bytes, content_type: str):
                self.send_response(status)
                self.send_header('Content-Type', content_type)
                self.send_header('Content-Length', str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def log_message(self, format, *args):
                pass

        return TileRequestHandler


@pytest.fixture
def tile_server(monkeypatch):
    monkeypatch.setenv("NO_PROXY", "127.0.0.1,localhost")
    monkeypatch.setenv("no_proxy", "127.0.0.1,localhost")
    server = MockTileServer()
    server.start()
    yield server
    server.stop()
