"""
Fact probes.

Purpose
Answer yes or no questions about the source and target hosts.

Report facts are pure text containment over InventoryReport lines.
Host facts (socket present, service active) are delegated to the host
collaborators and never cached, so every call reflects current state.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from distro_migration.execution.base import HostFilesystem, ServiceManager
from distro_migration.inventory.report import InventoryReport


def has_fact(report: InventoryReport, key: str) -> bool:
    """True when any report line contains key."""
    return any(key in line for line in report.lines)


def has_any_fact(report: InventoryReport, keys: Iterable[str]) -> bool:
    return any(has_fact(report, key) for key in keys)


def matching_lines(report: InventoryReport, keys: Iterable[str]) -> list[str]:
    """Return report lines mentioning any of keys, in report order."""
    wanted = tuple(keys)
    return [line for line in report.lines if any(k in line for k in wanted)]


@dataclass(frozen=True)
class FactProbe:
    """
    Facts about the migration, bound to one target host and optionally one
    report.

    services and filesystem are the live host collaborators.
    Without a report every report fact is False.
    """

    services: ServiceManager
    filesystem: HostFilesystem
    report: InventoryReport = InventoryReport(lines=())

    def has_fact(self, key: str) -> bool:
        return has_fact(self.report, key)

    def has_any_fact(self, keys: Iterable[str]) -> bool:
        return has_any_fact(self.report, keys)

    def socket_present(self, path: Path) -> bool:
        return self.filesystem.socket_exists(path)

    def service_active(self, name: str) -> bool:
        return self.services.is_active(name)

    def any_service_active(self, names: Iterable[str]) -> bool:
        return any(self.services.is_active(n) for n in names)
