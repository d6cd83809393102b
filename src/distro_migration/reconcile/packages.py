"""
Package reconciliation.

Purpose
For every mapping entry whose source key appears in the inventory report,
make sure the mapped Debian package is installed.

Rules
1) Entries absent from the report are skipped and produce no decision
2) Entries whose target is installed are recorded as already_installed
3) Otherwise we install once. A failure is logged and the batch continues

There are no retries. Running again after a successful pass yields
already_installed for every entry, because the installed predicate is live.
"""

from __future__ import annotations

from typing import Mapping

import structlog

from distro_migration.core.types import PackageAction, PackageDecision
from distro_migration.execution.base import PackageManager
from distro_migration.inventory.probe import has_fact
from distro_migration.inventory.report import InventoryReport
from distro_migration.report.restore_log import RestoreLog

logger = structlog.get_logger(__name__)


class PackageReconciler:
    """Install Debian equivalents for packages found on the source host."""

    def __init__(
        self,
        packages: PackageManager,
        mapping: Mapping[str, str],
        restore_log: RestoreLog,
    ) -> None:
        self._packages = packages
        self._mapping = dict(mapping)
        self._log = restore_log

    def reconcile(self, report: InventoryReport) -> list[PackageDecision]:
        decisions: list[PackageDecision] = []
        self._log.log("Installing packages as needed...")

        for source_key, target in self._mapping.items():
            if not has_fact(report, source_key):
                continue

            if self._packages.is_installed(target):
                self._log.log(f"{target} already installed.")
                action = PackageAction.already_installed
            elif self._packages.install(target):
                self._log.log(f"{target} installed.")
                action = PackageAction.install
            else:
                self._log.log(f"Error installing {target}")
                logger.warning("packages.install_failed", source=source_key, target=target)
                action = PackageAction.install_failed

            decisions.append(
                PackageDecision(source_key=source_key, target_package=target, action=action)
            )

        return decisions
