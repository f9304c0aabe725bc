"""Parsing the Weave Net manifest and navigating the DaemonSet.

The release manifest is a single `kind: List` document whose `items`
include the DaemonSet that runs weave and weave-npc. Parsed YAML is kept
as plain dicts and lists; dicts preserve key order, so an untouched
document renders back in its original layout.

Accessors return None instead of raising when an intermediate node is
missing or has the wrong type.
"""

import logging
from typing import Any, Optional

import yaml

from weave.errors import DaemonSetNotFoundError, ListNotFoundError, ParseError

logger = logging.getLogger(__name__)

TARGET_KIND = 'DaemonSet'


def parse(text: str) -> list:
    """Parse manifest text into its list of YAML documents.

    Raises:
        ParseError: If the text is not valid YAML
    """
    try:
        return list(yaml.safe_load_all(text))
    except (yaml.YAMLError, ValueError) as e:
        # ValueError: well-formed but impossible scalars such as 2020-13-45
        logger.debug("YAML error: %s", e)
        raise ParseError() from e


def locate_target(documents: list) -> tuple[dict, dict]:
    """Find the List and its DaemonSet.

    Only the first document is inspected. The returned DaemonSet is the
    live dict inside the List, so changes to it show up when the List is
    rendered.

    Returns:
        Tuple of (resource_list, daemonset)

    Raises:
        ListNotFoundError: If the first document has no items array
        DaemonSetNotFoundError: If no item is a DaemonSet
    """
    resource_list = documents[0] if documents else None
    if not isinstance(resource_list, dict) or not isinstance(resource_list.get('items'), list):
        raise ListNotFoundError()

    for item in resource_list['items']:
        if isinstance(item, dict) and item.get('kind') == TARGET_KIND:
            return resource_list, item

    raise DaemonSetNotFoundError()


def _child(node: Any, key: str) -> Optional[dict]:
    """Return node[key] if both are mappings."""
    if not isinstance(node, dict):
        return None
    value = node.get(key)
    return value if isinstance(value, dict) else None


def pod_spec(target: dict) -> Optional[dict]:
    """Return spec.template.spec of a workload."""
    return _child(_child(_child(target, 'spec'), 'template'), 'spec')


def _list_field(target: dict, key: str) -> Optional[list]:
    spec = pod_spec(target)
    if spec is None:
        return None
    value = spec.get(key)
    return value if isinstance(value, list) else None


def containers(target: dict) -> Optional[list]:
    """Return the pod's containers list."""
    return _list_field(target, 'containers')


def init_containers(target: dict) -> Optional[list]:
    """Return the pod's initContainers list."""
    return _list_field(target, 'initContainers')


def nth_container(items: Optional[list], index: int) -> Optional[dict]:
    """Return items[index] if it exists and is a mapping."""
    if items is None or index >= len(items):
        return None
    item = items[index]
    return item if isinstance(item, dict) else None


def container_env(container: dict) -> Optional[list]:
    """Return a container's env list, creating it when absent."""
    env = container.get('env')
    if env is None:
        env = container['env'] = []
    return env if isinstance(env, list) else None


def selinux_options(target: dict) -> Optional[dict]:
    """Return the pod securityContext.seLinuxOptions, creating missing mappings."""
    spec = pod_spec(target)
    if spec is None:
        return None

    node = spec
    for key in ('securityContext', 'seLinuxOptions'):
        child = node.get(key)
        if child is None:
            child = node[key] = {}
        if not isinstance(child, dict):
            return None
        node = child
    return node
