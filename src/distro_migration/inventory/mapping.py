"""
Package name mapping.

Maps package identifiers found in the source inventory to the Debian package
that provides the same service. Keys are unique; order carries no meaning.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

DEFAULT_PACKAGE_MAPPING: Mapping[str, str] = MappingProxyType(
    {
        "httpd": "apache2",
        "nginx": "nginx",
        "postgresql-server": "postgresql",
        "mariadb-server": "mariadb-server",
        "mysql-server": "mysql-server",
        "redis": "redis-server",
    }
)


def merge_mapping(overrides: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return the default mapping with overrides applied on top."""
    merged = dict(DEFAULT_PACKAGE_MAPPING)
    if overrides:
        merged.update({str(k): str(v) for k, v in overrides.items()})
    return merged
