"""
Pytest configuration and fixtures for InvCU image cache tests.
"""

import os
import socketserver
import sys
import tempfile
import threading
import time
from collections import Counter
from http.server import BaseHTTPRequestHandler
from pathlib import Path
from types import SimpleNamespace

import pytest

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

# Cache event log goes to a scratch directory, not the project tree.
os.environ.setdefault("INVCU_LOG_DIR", tempfile.mkdtemp(prefix="invcu-cache-logs-"))

from invcu_image_cache.infrastructure.config import DiskCacheConfig, Settings
from tests.helpers import make_jpeg, make_png_rgba


class ThreadedTCPServer(socketserver.ThreadingMixIn, socketserver.TCPServer):
    allow_reuse_address = True
    daemon_threads = True


class ImageRequestHandler(BaseHTTPRequestHandler):
    def _send(self, status: int, body: bytes, content_type: str = "image/jpeg"):
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_GET(self):
        state = self.server.server_state  # type: ignore[attr-defined]
        with state["lock"]:
            state["hits"][self.path] += 1

        delay = state["delays"].get(self.path, state["delay"])
        if delay:
            time.sleep(delay)

        if self.path in state["redirects"]:
            self.send_response(302)
            self.send_header("Location", state["redirects"][self.path])
            self.send_header("Content-Length", "0")
            self.end_headers()
            return

        status = state["statuses"].get(self.path)
        if status is not None:
            self._send(status, b'{"error": "unavailable"}', content_type="application/json")
            return

        if self.path in state["bodies"]:
            self._send(200, state["bodies"][self.path], content_type="application/octet-stream")
            return

        if self.path.endswith(".png"):
            self._send(200, make_png_rgba(), content_type="image/png")
            return

        if self.path.endswith(".jpg"):
            self._send(200, state["jpeg"])
            return

        self._send(404, b'{"error": "not found"}', content_type="application/json")

    def log_message(self, format, *args):
        # Suppress default HTTP server logging to keep test output clean.
        return


@pytest.fixture
def image_server():
    """Start a lightweight HTTP server that serves item photos.

    Any ``*.jpg`` path returns the same JPEG and any ``*.png`` path an RGBA
    PNG. Per-path behavior is configured through ``state``:
        - statuses: path -> HTTP error status
        - bodies: path -> raw body served with 200
        - redirects: path -> Location for a 302
        - delays: path -> seconds to sleep before answering
        - delay: default delay for every path
        - hits: Counter of requests per path
    """
    state = {
        "jpeg": make_jpeg(),
        "statuses": {},
        "bodies": {},
        "redirects": {},
        "delays": {},
        "delay": 0.0,
        "hits": Counter(),
        "lock": threading.Lock(),
    }

    server = ThreadedTCPServer(("127.0.0.1", 0), ImageRequestHandler)
    server.server_state = state  # type: ignore[attr-defined]

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    base_url = f"http://127.0.0.1:{server.server_address[1]}"

    try:
        yield SimpleNamespace(base_url=base_url, state=state)
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def cache_dir(tmp_path):
    """Empty directory for a disk store."""
    return tmp_path / "ImageCache"


@pytest.fixture
def settings(cache_dir):
    """Default settings with the disk tier under tmp_path."""
    return Settings(disk=DiskCacheConfig(directory=cache_dir))


@pytest.fixture(autouse=True)
def reset_global_state():
    """Reset global state before each test to ensure isolation."""
    if "invcu_image_cache.telemetry.metrics" in sys.modules:
        from invcu_image_cache.telemetry.metrics import MetricsCollector
        MetricsCollector.reset()

    if "invcu_image_cache.infrastructure.config" in sys.modules:
        from invcu_image_cache.infrastructure.config import get_settings
        get_settings.cache_clear()

    yield

    if "invcu_image_cache.telemetry.metrics" in sys.modules:
        from invcu_image_cache.telemetry.metrics import MetricsCollector
        MetricsCollector.reset()
