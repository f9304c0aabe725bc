"""Weave Net manifest customization.

Downloads the release manifest, applies query-parameter directives to the
DaemonSet and renders the result.
"""

from weave.cache import DocumentCache
from weave.errors import (
    WeaveError,
    FetchError,
    ParseError,
    StructuralError,
    ListNotFoundError,
    DaemonSetNotFoundError,
)
from weave.pipeline import ManifestProcessor, ManifestResult, customize

__all__ = [
    # Cache
    "DocumentCache",
    # Errors
    "WeaveError",
    "FetchError",
    "ParseError",
    "StructuralError",
    "ListNotFoundError",
    "DaemonSetNotFoundError",
    # Pipeline
    "ManifestProcessor",
    "ManifestResult",
    "customize",
]
