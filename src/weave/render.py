"""Rendering the customized manifest back to YAML."""

import yaml


def render(document) -> str:
    """Render a single YAML document.

    Keys keep their parsed order; block style matches the upstream release
    manifests.
    """
    return yaml.safe_dump(
        document,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )
