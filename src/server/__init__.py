"""Server package for the manifest HTTP service.

The server customizes Weave Net manifests per request and serves the
static landing page on a single port.
"""

from server.httpd import (
    Server,
    ServerHandler,
    create_server,
)
from server.manifests import handle_manifest_request
from server.static import handle_static_request

__all__ = [
    # Server
    "Server",
    "ServerHandler",
    "create_server",
    # Handlers
    "handle_manifest_request",
    "handle_static_request",
]
