"""Manifest pipeline: fetch, parse, customize, render.

Parse and structural problems with the upstream manifest are reported as
an error result rather than raised. Fetch failures propagate to the caller.
"""

import logging
from dataclasses import asdict, dataclass

from weave.cache import DocumentCache
from weave.directives import apply_directives
from weave.document import locate_target, parse
from weave.errors import ParseError, StructuralError
from weave.render import render

logger = logging.getLogger(__name__)

STATUS_SUCCESS = 'success'
STATUS_ERROR = 'error'


@dataclass
class ManifestResult:
    """Outcome of processing one manifest request."""
    status: str
    body: str

    @property
    def ok(self) -> bool:
        return self.status == STATUS_SUCCESS

    def to_dict(self) -> dict:
        return asdict(self)


def _error(message: str) -> ManifestResult:
    logger.warning(message)
    return ManifestResult(status=STATUS_ERROR, body=message)


def customize(text: str, params: list[tuple[str, str]]) -> ManifestResult:
    """Apply directives to manifest text and render the List document.

    Only the first YAML document is rendered; any others are dropped.
    """
    try:
        documents = parse(text)
        resource_list, daemonset = locate_target(documents)
    except (ParseError, StructuralError) as e:
        return _error(e.message)

    apply_directives(daemonset, params)
    return ManifestResult(status=STATUS_SUCCESS, body=render(resource_list))


class ManifestProcessor:
    """Builds customized manifests from cached upstream sources."""

    def __init__(self, cache: DocumentCache):
        self.cache = cache

    def process(self, source_url: str, params: list[tuple[str, str]]) -> ManifestResult:
        """Build the manifest for a source URL and request parameters.

        Raises:
            FetchError: If the upstream manifest cannot be downloaded
        """
        logger.info("Processing %s with %d parameter(s)", source_url, len(params))
        text = self.cache.fetch(source_url)
        return customize(text, params)
