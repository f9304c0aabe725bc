"""Manifest endpoint handler for the server.

Resolves the request to an upstream Weave Net manifest, applies the query
parameters and returns the rendered YAML.
"""

import json
import logging
from typing import Tuple

from config import ManifestSource
from resolver.version import query_params, resolve_path
from weave.errors import FetchError
from weave.pipeline import STATUS_ERROR, ManifestProcessor

logger = logging.getLogger(__name__)

YAML_CONTENT_TYPE = "application/yaml"
JSON_CONTENT_TYPE = "application/json"


def handle_manifest_request(
    path: str,
    processor: ManifestProcessor,
    table: list[ManifestSource],
) -> Tuple[bytes, int, str]:
    """Handle a manifest request.

    Args:
        path: Request path including query string
        processor: ManifestProcessor with the shared cache
        table: Version table for the configured release

    Returns:
        Tuple of (content_bytes, http_status, content_type). An unresolvable
        version yields an empty 404.
    """
    source = resolve_path(path, table)
    if not source.matched:
        logger.info("No manifest found for %s", path)
        return b"", 404, "text/plain"

    params = query_params(path)
    try:
        result = processor.process(source.source_url, params)
    except FetchError as e:
        logger.error("Upstream fetch failed: %s", e.message)
        return _error_json(e.message), 502, JSON_CONTENT_TYPE

    if result.ok:
        return result.body.encode("utf-8"), 200, YAML_CONTENT_TYPE
    return _error_json(result.body), 500, JSON_CONTENT_TYPE


def _error_json(message: str) -> bytes:
    """Build JSON error response."""
    return json.dumps({"status": STATUS_ERROR, "body": message}, indent="\t").encode("utf-8")
