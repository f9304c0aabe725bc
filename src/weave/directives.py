"""Query-parameter directives that customize the Weave Net DaemonSet.

Supported parameters:
- env.NAME=VALUE            set an allow-listed env var on the weave container
- seLinuxOptions.NAME=VALUE set a pod SELinux option
- version=TAG               retag the weave images
- disable-npc=true          drop the weave-npc container
- password-secret=NAME      read WEAVE_PASSWORD from secret NAME, key NAME

Directives are applied left to right and never raise: anything malformed
or unknown is logged and skipped.
"""

import enum
import logging
import re
from dataclasses import dataclass
from typing import Optional

from weave.document import (
    container_env,
    containers,
    init_containers,
    nth_container,
    selinux_options,
)

logger = logging.getLogger(__name__)

ENV_PREFIX = 'env.'
SELINUX_PREFIX = 'seLinuxOptions.'

NPC_CONTAINER = 'weave-npc'
EXPECT_NPC = 'EXPECT_NPC'
PASSWORD_VAR = 'WEAVE_PASSWORD'

ALLOWED_ENV_VARS = frozenset({
    'CHECKPOINT_DISABLE',
    'CONN_LIMIT',
    'HAIRPIN_MODE',
    'IPALLOC_RANGE',
    'EXPECT_NPC',
    'IPALLOC_INIT',
    'WEAVE_EXPOSE_IP',
    'WEAVE_METRICS_ADDR',
    'WEAVE_STATUS_ADDR',
    'WEAVE_MTU',
    'NO_MASQ_LOCAL',
    'IPTABLES_BACKEND',
})

# Final ":tag" of an image reference; a colon followed by "/" is a registry port
IMAGE_TAG = re.compile(r':[^:/]*$')


class DirectiveKind(enum.Enum):
    """Closed set of directive kinds."""
    ENV = 'env'
    SELINUX = 'seLinuxOptions'
    VERSION = 'version'
    DISABLE_NPC = 'disable-npc'
    PASSWORD_SECRET = 'password-secret'
    UNKNOWN = 'unknown'


NAMED_DIRECTIVES = {
    DirectiveKind.VERSION.value: DirectiveKind.VERSION,
    DirectiveKind.DISABLE_NPC.value: DirectiveKind.DISABLE_NPC,
    DirectiveKind.PASSWORD_SECRET.value: DirectiveKind.PASSWORD_SECRET,
}


@dataclass
class Directive:
    """A classified query parameter."""
    kind: DirectiveKind
    key: str
    value: str
    name: str = ''  # env var or SELinux option name for prefixed kinds


@dataclass
class SecretRef:
    """Reference to a key inside a Kubernetes secret."""
    secret_name: str
    secret_key: str

    def to_value_from(self) -> dict:
        return {'secretKeyRef': {'name': self.secret_name, 'key': self.secret_key}}


def classify(key: str, value: str) -> Directive:
    """Classify a query parameter. Prefix kinds are checked before named ones."""
    if key.startswith(ENV_PREFIX):
        return Directive(DirectiveKind.ENV, key, value, name=key[len(ENV_PREFIX):])
    if key.startswith(SELINUX_PREFIX):
        return Directive(DirectiveKind.SELINUX, key, value, name=key[len(SELINUX_PREFIX):])
    return Directive(NAMED_DIRECTIVES.get(key, DirectiveKind.UNKNOWN), key, value)


def upsert_env_var(
    env: list,
    name: str,
    value: Optional[str] = None,
    secret: Optional[SecretRef] = None,
) -> None:
    """Insert or update an env var entry.

    An entry holds either a plain value or a secret reference; setting one
    removes the other. New entries are appended.
    """
    for entry in env:
        if isinstance(entry, dict) and entry.get('name') == name:
            if secret is not None:
                logger.info("Modifying env var %s from secret %s", name, secret.secret_name)
                entry.pop('value', None)
                entry['valueFrom'] = secret.to_value_from()
            else:
                logger.info("Modifying env var %s=%s", name, value)
                entry.pop('valueFrom', None)
                entry['value'] = value
            return

    if secret is not None:
        logger.info("Adding env var %s from secret %s", name, secret.secret_name)
        env.append({'name': name, 'valueFrom': secret.to_value_from()})
    else:
        logger.info("Adding env var %s=%s", name, value)
        env.append({'name': name, 'value': value})


def _weave_env(target: dict) -> Optional[list]:
    """Return the env list of the first (weave) container."""
    container = nth_container(containers(target), 0)
    if container is None:
        logger.warning("DaemonSet has no containers, cannot set env vars")
        return None
    env = container_env(container)
    if env is None:
        logger.warning("Container %s has a malformed env list", container.get('name'))
    return env


def _set_weave_env(target: dict, name: str, value: Optional[str] = None,
                   secret: Optional[SecretRef] = None) -> None:
    env = _weave_env(target)
    if env is not None:
        upsert_env_var(env, name, value=value, secret=secret)


def apply_env(target: dict, name: str, value: str) -> None:
    """Set an allow-listed env var on the weave container."""
    if name not in ALLOWED_ENV_VARS:
        logger.info("Not adding unknown env var %s=%s", name, value)
        return
    _set_weave_env(target, name, value=value)


def apply_selinux_option(target: dict, name: str, value: str) -> None:
    """Set a pod SELinux option verbatim."""
    options = selinux_options(target)
    if options is None:
        logger.warning("Cannot set SELinux option %s: pod spec not found", name)
        return
    logger.info("Adding SELinux option %s=%s", name, value)
    options[name] = value


def replace_image_tag(image: str, tag: str) -> str:
    """Replace the tag of an image reference. Untagged images are unchanged."""
    return IMAGE_TAG.sub(lambda _: f':{tag}', image)


def _retag(container: Optional[dict], tag: str) -> None:
    if container is None or not isinstance(container.get('image'), str):
        return
    container['image'] = replace_image_tag(container['image'], tag)
    logger.debug("Container %s image is now %s", container.get('name'), container['image'])


def apply_version(target: dict, tag: str) -> None:
    """Retag the first init container and the first two containers.

    The second container may already be gone if disable-npc ran earlier.
    """
    _retag(nth_container(init_containers(target), 0), tag)

    pod_containers = containers(target)
    first = nth_container(pod_containers, 0)
    if first is None:
        logger.warning("DaemonSet has no containers, cannot set version %s", tag)
        return
    _retag(first, tag)
    _retag(nth_container(pod_containers, 1), tag)


def apply_disable_npc(target: dict, value: str) -> None:
    """Remove the weave-npc container and tell weave not to expect it."""
    if value != 'true':
        return

    _set_weave_env(target, EXPECT_NPC, value='0')

    pod_containers = containers(target)
    if pod_containers is None:
        return
    for index, container in enumerate(pod_containers):
        if isinstance(container, dict) and container.get('name') == NPC_CONTAINER:
            logger.info("Removing container %s", NPC_CONTAINER)
            del pod_containers[index]
            break


def apply_password_secret(target: dict, secret_name: str) -> None:
    """Source WEAVE_PASSWORD from the named secret (key of the same name)."""
    if not secret_name:
        return
    _set_weave_env(
        target, PASSWORD_VAR,
        secret=SecretRef(secret_name=secret_name, secret_key=secret_name),
    )


def apply_directive(target: dict, directive: Directive) -> None:
    """Apply one classified directive to the DaemonSet."""
    kind = directive.kind
    if kind is DirectiveKind.ENV:
        apply_env(target, directive.name, directive.value)
    elif kind is DirectiveKind.SELINUX:
        apply_selinux_option(target, directive.name, directive.value)
    elif kind is DirectiveKind.VERSION:
        logger.info("Processing option %s=%s", directive.key, directive.value)
        apply_version(target, directive.value)
    elif kind is DirectiveKind.DISABLE_NPC:
        logger.info("Processing option %s=%s", directive.key, directive.value)
        apply_disable_npc(target, directive.value)
    elif kind is DirectiveKind.PASSWORD_SECRET:
        logger.info("Processing option %s", directive.key)
        apply_password_secret(target, directive.value)
    else:
        logger.info("Ignoring unknown option %s", directive.key)


def apply_directives(target: dict, params: list[tuple[str, str]]) -> None:
    """Apply query parameters to the DaemonSet in request order."""
    for key, value in params:
        apply_directive(target, classify(key, value))
