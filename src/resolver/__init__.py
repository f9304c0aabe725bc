"""Resolver package for mapping client versions to upstream manifests."""

from resolver.version import (
    VERSION_PARAM,
    KubeVersion,
    SourceDescriptor,
    decode_version,
    is_manifest_path,
    query_params,
    resolve_path,
    select_manifest,
)

__all__ = [
    "VERSION_PARAM",
    "KubeVersion",
    "SourceDescriptor",
    "decode_version",
    "is_manifest_path",
    "query_params",
    "resolve_path",
    "select_manifest",
]
