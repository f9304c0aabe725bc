"""Main HTTP server.

Serves customized Weave Net manifests and the static landing page on a
single port. Requests are handled one thread each; the manifest cache is
shared between them.
"""

import json
import logging
import signal
import sys
from dataclasses import replace
from http.server import ThreadingHTTPServer, BaseHTTPRequestHandler
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

from config import DEFAULT_BIND, DEFAULT_PORT, ManifestSource, ServerConfig, manifest_table
from resolver.version import is_manifest_path
from weave.cache import DocumentCache
from weave.pipeline import ManifestProcessor

from server.manifests import handle_manifest_request
from server.static import handle_static_request

logger = logging.getLogger(__name__)


class ServerHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the manifest server."""

    # Class-level state (shared across requests)
    processor: Optional[ManifestProcessor] = None
    table: list[ManifestSource] = []
    static_dir: Optional[Path] = None

    def log_message(self, format: str, *args):
        """Override to use Python logging."""
        logger.info("%s - %s", self.address_string(), format % args)

    def send_json(self, data: dict, status: int = 200):
        """Send JSON response."""
        body = json.dumps(data, indent=2).encode("utf-8")
        self.send_bytes(body, status, "application/json")

    def send_bytes(self, content: bytes, status: int, content_type: str):
        """Send bytes response."""
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(content)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(content)

    def do_GET(self):
        """Handle GET requests."""
        path = urlsplit(self.path).path

        # Health check endpoint
        if path == "/health":
            self.send_json({"status": "ok"})
            return

        # Manifest endpoints (/k8s/net?k8s-version=..., /k8s/v1.X/net.yaml)
        if is_manifest_path(path):
            self._handle_manifest()
            return

        self._handle_static(path)

    def do_HEAD(self):
        """Handle HEAD requests."""
        self.do_GET()

    def _handle_manifest(self):
        """Handle a manifest request."""
        if not self.processor:
            self.send_json({"status": "error", "body": "Processor not initialized"}, 500)
            return

        content, status, content_type = handle_manifest_request(
            self.path, self.processor, self.table
        )
        self.send_bytes(content, status, content_type)

    def _handle_static(self, path: str):
        """Handle a static file request."""
        if not self.static_dir:
            self.send_bytes(b"File not found", 404, "text/plain")
            return

        content, status, content_type = handle_static_request(path, self.static_dir)
        self.send_bytes(content, status, content_type)


class Server:
    """HTTP server for customized manifests."""

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        cache: Optional[DocumentCache] = None,
    ):
        """Initialize server.

        Args:
            config: Server configuration (defaults if None)
            cache: Manifest cache shared by all requests (created if None)
        """
        self.config = config or ServerConfig()
        if cache is None:
            cache = DocumentCache(timeout=self.config.fetch_timeout)
        self.cache = cache
        self.server: Optional[ThreadingHTTPServer] = None

    @property
    def bind(self) -> str:
        return self.config.bind

    @property
    def port(self) -> int:
        """Bound port (the real one once started, useful with port 0)."""
        if self.server:
            return self.server.server_address[1]
        return self.config.port

    def start(self, install_signal_handlers: bool = True):
        """Bind the listening socket.

        Raises:
            RuntimeError: If the server cannot bind
        """
        ServerHandler.processor = ManifestProcessor(self.cache)
        ServerHandler.table = manifest_table(self.config)
        ServerHandler.static_dir = self.config.static_dir

        try:
            self.server = ThreadingHTTPServer((self.config.bind, self.config.port), ServerHandler)
        except OSError as e:
            logger.error("Failed to bind %s:%d: %s", self.config.bind, self.config.port, e)
            raise RuntimeError(f"Bind failed: {e}") from e
        self.server.daemon_threads = True

        logger.info("Server starting on http://%s:%d", self.bind, self.port)
        logger.info("Weave Net release: %s", self.config.weave_version)
        if not self.config.static_dir.is_dir():
            logger.warning("Static directory not found: %s", self.config.static_dir)

        if install_signal_handlers:
            self._setup_signal_handlers()

    def serve_forever(self):
        """Start serving requests."""
        if not self.server:
            raise RuntimeError("Server not started")

        try:
            self.server.serve_forever()
        except KeyboardInterrupt:
            logger.info("Shutdown requested")
        finally:
            self.close()

    def shutdown(self):
        """Stop a serve_forever loop running in another thread."""
        logger.info("Shutting down server")
        if self.server:
            self.server.shutdown()

    def close(self):
        """Release the listening socket."""
        if self.server:
            self.server.server_close()
            self.server = None

    def _setup_signal_handlers(self):
        """Setup signal handler for graceful shutdown."""

        def handle_sigterm(signum, frame):
            """Handle SIGTERM for graceful shutdown."""
            logger.info("Received SIGTERM")
            self.close()
            sys.exit(0)

        signal.signal(signal.SIGTERM, handle_sigterm)


def create_server(
    bind: str = DEFAULT_BIND,
    port: int = DEFAULT_PORT,
    config: Optional[ServerConfig] = None,
    cache: Optional[DocumentCache] = None,
) -> Server:
    """Create a server instance.

    Convenience function; bind and port override the config values.

    Returns:
        Server instance (not yet started)
    """
    config = replace(config or ServerConfig(), bind=bind, port=port)
    return Server(config=config, cache=cache)
