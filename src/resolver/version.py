"""Kubernetes version to Weave Net manifest resolution.

Two request shapes are recognized:
- /k8s/v{MAJOR}.{MINOR}/net.yaml (the /k8s prefix is optional)
- /k8s/net?k8s-version={base64-encoded `kubectl version` output}

Resolution is a pure function of the request path and the version table.
"""

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qsl, urlsplit

from config import ManifestSource

logger = logging.getLogger(__name__)

# Query parameter carrying the encoded `kubectl version` output
VERSION_PARAM = 'k8s-version'

VERSIONED_PATH = re.compile(r'^/(k8s/)?v(\d)\.(\d{1,2})/net\.yaml$', re.IGNORECASE)
ENCODED_PATH = re.compile(r'^/(k8s/)?net$', re.IGNORECASE)

# `kubectl version` output up to Kubernetes 1.25
GIT_VERSION_FORMAT = re.compile(r'GitVersion:"v(\d)\.(\d{1,2})\.(.*)"')
# `kubectl version --short`, the default output of newer releases
SHORT_VERSION_FORMAT = re.compile(r'Client Version: v(\d)\.(\d{1,2})\.(.*)')


@dataclass
class KubeVersion:
    """Kubernetes major/minor version as reported by the client."""
    major: str
    minor: str


@dataclass
class SourceDescriptor:
    """Result of version resolution."""
    matched: bool
    source_url: Optional[str] = None


NO_MATCH = SourceDescriptor(matched=False)


def select_manifest(version: KubeVersion, table: list[ManifestSource]) -> SourceDescriptor:
    """Pick the manifest for a Kubernetes version.

    Only major version 1 is supported. The table is scanned in order and the
    first row whose minimum minor version is <= the requested minor wins.
    """
    if version.major != '1':
        logger.debug("Unsupported Kubernetes major version %s", version.major)
        return NO_MATCH

    try:
        minor = int(version.minor)
    except ValueError:
        return NO_MATCH

    for source in table:
        if minor >= source.min_minor:
            return SourceDescriptor(matched=True, source_url=source.url)

    logger.debug("No manifest for Kubernetes 1.%s", version.minor)
    return NO_MATCH


def _b64decode(encoded: str) -> str:
    """Decode base64 leniently (form-decoded '+', URL-safe alphabet, no padding)."""
    cleaned = encoded.strip().replace(' ', '+').replace('-', '+').replace('_', '/')
    cleaned += '=' * (-len(cleaned) % 4)
    return base64.b64decode(cleaned).decode('utf-8', errors='replace')


def decode_version(encoded: str) -> Optional[KubeVersion]:
    """Extract the client version from base64 `kubectl version` output.

    Returns:
        KubeVersion, or None if the string is not base64 or matches neither
        known output format
    """
    try:
        decoded = _b64decode(encoded)
    except (binascii.Error, ValueError):
        logger.debug("k8s-version is not valid base64")
        return None

    for pattern in (GIT_VERSION_FORMAT, SHORT_VERSION_FORMAT):
        if match := pattern.search(decoded):
            return KubeVersion(major=match.group(1), minor=match.group(2))

    logger.debug("Unrecognized kubectl version output: %r", decoded[:200])
    return None


def is_manifest_path(path: str) -> bool:
    """Check whether a request path (without query) addresses a manifest."""
    return bool(VERSIONED_PATH.match(path) or ENCODED_PATH.match(path))


def resolve_path(path: str, table: list[ManifestSource]) -> SourceDescriptor:
    """Resolve a request path with optional query string to a source manifest.

    Args:
        path: Request path as received, e.g. "/k8s/v1.28/net.yaml?version=2.8.1"
        table: Version table, highest minimum minor version first

    Returns:
        SourceDescriptor; matched=False when no compatible manifest exists
    """
    parts = urlsplit(path)

    if match := VERSIONED_PATH.match(parts.path):
        return select_manifest(KubeVersion(major=match.group(2), minor=match.group(3)), table)

    if ENCODED_PATH.match(parts.path):
        encoded = next(
            (value for key, value in parse_qsl(parts.query, keep_blank_values=True)
             if key == VERSION_PARAM),
            None,
        )
        if not encoded:
            return NO_MATCH
        version = decode_version(encoded)
        if version is None:
            return NO_MATCH
        return select_manifest(version, table)

    return NO_MATCH


def query_params(path: str) -> list[tuple[str, str]]:
    """Return the mutation parameters of a request in arrival order.

    Duplicates are kept. Every occurrence of the reserved k8s-version
    parameter is removed.
    """
    query = urlsplit(path).query
    return [
        (key, value)
        for key, value in parse_qsl(query, keep_blank_values=True)
        if key != VERSION_PARAM
    ]
