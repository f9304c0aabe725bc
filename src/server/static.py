"""Static file handler for the server.

Serves the landing page and its assets from the configured public
directory. Paths that escape the directory are treated as missing.
"""

import logging
import mimetypes
from pathlib import Path
from typing import Tuple

logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"
DEFAULT_CONTENT_TYPE = "application/octet-stream"
NOT_FOUND = (b"File not found", 404, "text/plain")


def _guess_content_type(file_path: Path) -> str:
    content_type, _ = mimetypes.guess_type(file_path.name)
    if content_type is None:
        if file_path.suffix in (".yaml", ".yml"):
            content_type = "application/yaml"
        else:
            content_type = DEFAULT_CONTENT_TYPE
    return content_type


def handle_static_request(path: str, static_dir: Path) -> Tuple[bytes, int, str]:
    """Serve a file from the static directory.

    Args:
        path: Request path without query string (e.g., "/css/site.css")
        static_dir: Root directory of static files

    Returns:
        Tuple of (content_bytes, http_status, content_type)
    """
    root = Path(static_dir).resolve()
    relative = path.lstrip("/") or INDEX_FILE
    file_path = (root / relative).resolve()

    if not file_path.is_relative_to(root):
        logger.warning("Rejected static path outside %s: %s", root, path)
        return NOT_FOUND

    if file_path.is_dir():
        file_path = file_path / INDEX_FILE

    try:
        content = file_path.read_bytes()
    except OSError:
        return NOT_FOUND

    return content, 200, _guess_content_type(file_path)
