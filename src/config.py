"""Server configuration management.

Configuration is built in three layers, later layers winning:
1. Built-in defaults (current Weave Net release, port 8080)
2. Optional YAML config file (--config)
3. Environment variables (WEAVE_VERSION, PORT, ...)

The release version drives the upstream manifest URLs, so the version
table is derived from configuration rather than hard-coded per request.
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_WEAVE_VERSION = '2.8.1'
DEFAULT_RELEASE_URL = 'https://github.com/weaveworks/weave/releases/download'
DEFAULT_PORT = 8080
DEFAULT_BIND = '0.0.0.0'

# Upstream manifest per minimum Kubernetes minor version.
# Must stay in descending order: the first row that fits wins.
MANIFEST_FILES = [
    (12, 'weave-daemonset-k8s.yaml'),
    (11, 'weave-daemonset-k8s-1.11.yaml'),
    (9, 'weave-daemonset-k8s-1.9.yaml'),
    (8, 'weave-daemonset-k8s-1.8.yaml'),
]

# Environment variable -> config field
ENV_OVERRIDES = {
    'WEAVE_VERSION': 'weave_version',
    'WEAVE_RELEASE_URL': 'release_url',
    'BIND': 'bind',
    'PORT': 'port',
    'WEAVE_STATIC_DIR': 'static_dir',
    'WEAVE_FETCH_TIMEOUT': 'fetch_timeout',
}


def configure_logging(verbose: bool = False):
    """Configure root logging for CLI commands."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


class ConfigError(Exception):
    """Configuration error."""


def get_base_dir() -> Path:
    """Get the repository root directory."""
    return Path(__file__).resolve().parent.parent


@dataclass
class ServerConfig:
    """Process-wide settings for the manifest server."""
    weave_version: str = DEFAULT_WEAVE_VERSION
    release_url: str = DEFAULT_RELEASE_URL
    bind: str = DEFAULT_BIND
    port: int = DEFAULT_PORT
    static_dir: Path = field(default_factory=lambda: get_base_dir() / 'public')
    # None leaves the timeout to the HTTP transport
    fetch_timeout: Optional[float] = None

    def __post_init__(self):
        if isinstance(self.static_dir, str):
            self.static_dir = Path(self.static_dir)
        self.weave_version = str(self.weave_version).lstrip('v')
        self.release_url = str(self.release_url).rstrip('/')

        try:
            self.port = int(self.port)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid port: {self.port!r}") from e

        if self.fetch_timeout in ('', None):
            self.fetch_timeout = None
        else:
            try:
                self.fetch_timeout = float(self.fetch_timeout)
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Invalid fetch timeout: {self.fetch_timeout!r}") from e


@dataclass
class ManifestSource:
    """One row of the version table."""
    min_minor: int
    url: str


def manifest_url(config: ServerConfig, file_name: str) -> str:
    """Build the release download URL for a manifest file."""
    return f"{config.release_url}/v{config.weave_version}/{file_name}"


def manifest_table(config: ServerConfig) -> list[ManifestSource]:
    """Return the version table for the configured release, highest first."""
    return [
        ManifestSource(min_minor=min_minor, url=manifest_url(config, file_name))
        for min_minor, file_name in MANIFEST_FILES
    ]


def _parse_yaml(path: Path) -> dict:
    """Parse a YAML config file and return its mapping."""
    with open(path, encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {path}")
    return data


def load_config(config_file: Optional[Path] = None, environ: Optional[dict] = None) -> ServerConfig:
    """Load server configuration.

    Args:
        config_file: Optional YAML file with ServerConfig field names as keys
        environ: Environment mapping (default: os.environ)

    Returns:
        Resolved ServerConfig

    Raises:
        ConfigError: If the file is missing or malformed, or a value is invalid
    """
    if environ is None:
        environ = os.environ

    known = {f.name for f in fields(ServerConfig)}
    values: dict = {}

    if config_file is not None:
        config_file = Path(config_file)
        if not config_file.exists():
            raise ConfigError(f"Config file not found: {config_file}")
        for key, value in _parse_yaml(config_file).items():
            if key not in known:
                logger.warning("Ignoring unknown config key '%s' in %s", key, config_file)
                continue
            values[key] = value

    for env_var, key in ENV_OVERRIDES.items():
        if env_value := environ.get(env_var):
            values[key] = env_value

    config = ServerConfig(**values)
    logger.debug("Loaded config: %s", config)
    return config
