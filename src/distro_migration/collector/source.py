"""
Source host collector.

Runs on the CentOS host and produces the migration bundle:

1) Inventory report: installed packages, running services, disabled unit
   files, addresses, ifcfg files and the firewalld configuration
2) Archive of configuration and data, excluding raw database directories
3) Logical dumps for PostgreSQL and MariaDB or MySQL when detected
4) Transfer of everything to the Debian host

A failed inventory command leaves its section empty. A failed dump or
transfer is recorded in the result and logged; the collector never raises for
collaborator failures, only for a missing work dir that cannot be created.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Callable

import structlog

from distro_migration.core.config import MigrationConfig
from distro_migration.core.types import DatabaseEngine
from distro_migration.execution.base import SourceHost
from distro_migration.inventory.probe import has_any_fact, has_fact
from distro_migration.inventory.report import InventoryReport
from distro_migration.reconcile.databases import MYSQL_KEYS, POSTGRES_KEY
from distro_migration.report.restore_log import RestoreLog

logger = structlog.get_logger(__name__)

INVENTORY_COMMANDS: tuple[tuple[str, ...], ...] = (
    ("rpm", "-qa"),
    ("systemctl", "list-units", "--type=service", "--state=running"),
    ("systemctl", "list-unit-files", "--state=disabled"),
    ("ip", "a"),
)
IFCFG_PATTERN = "/etc/sysconfig/network-scripts/ifcfg-*"
FIREWALL_COMMAND = ("firewall-cmd", "--list-all")
FIREWALL_MISSING = "firewalld not installed."


@dataclass
class CollectionResult:
    """
    Outcome of one collector run.

    dumps maps engine to dump path for every dump that was written.
    transferred is None when no destination was configured.
    """

    report_path: Path
    archive_path: Path | None = None
    dumps: dict[DatabaseEngine, Path] = field(default_factory=dict)
    transferred: bool | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class SourceCollector:
    """
    Collects the migration bundle on the source host.

    host is the source side collaborator, a SystemHost in production.
    log is the collector's own timestamped log, written to the work dir.
    """

    def __init__(
        self,
        host: SourceHost,
        config: MigrationConfig,
        log: RestoreLog,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._host = host
        self._config = config
        self._log = log
        self._today = today

    def build_report(self) -> InventoryReport:
        """Capture inventory sections and write the report file."""
        chunks: list[str] = []

        self._log.log("Analyzing installed packages and services...")
        for args in INVENTORY_COMMANDS:
            result = self._host.run(args)
            if not result.ok:
                logger.warning("collector.command_failed", argv=list(args), exit_code=result.exit_code)
            chunks.append(result.stdout)

        self._log.log("Analyzing network & firewall...")
        chunks.append(self._host.read_files(IFCFG_PATTERN))
        firewall = self._host.run(FIREWALL_COMMAND)
        chunks.append(firewall.stdout if firewall.ok else FIREWALL_MISSING + "\n")

        text = "".join(c if c.endswith("\n") or not c else c + "\n" for c in chunks)
        path = self._config.report_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return InventoryReport.from_text(text, source=path)

    def collect(self) -> CollectionResult:
        self._config.work_dir.mkdir(parents=True, exist_ok=True)
        self._log.log("=== Migration analysis started ===")

        report = self.build_report()
        result = CollectionResult(report_path=self._config.report_path)

        archive = self._config.source_archive_path(self._today())
        self._log.log("Creating backup archive (excluding DB data directories)...")
        if self._host.create_archive(
            archive,
            sources=self._config.source_backup_sources,
            excludes=self._config.source_backup_excludes,
        ):
            result.archive_path = archive
        else:
            result.errors.append(f"archive failed: {archive}")
            self._log.log("ERROR: Backup archive creation failed.")

        if has_fact(report, POSTGRES_KEY):
            self._log.log("Detected PostgreSQL. Dumping all databases...")
            self._dump(result, DatabaseEngine.postgresql, self._config.pg_dump_path)

        if has_any_fact(report, MYSQL_KEYS):
            self._log.log("Detected MariaDB/MySQL. Dumping all databases...")
            self._dump(result, DatabaseEngine.mysql, self._config.mysql_dump_path)

        self._transfer(result)
        self._log.log("=== Migration analysis completed ===")
        return result

    def _dump(self, result: CollectionResult, engine: DatabaseEngine, dest: Path) -> None:
        if self._host.dump_database(engine, dest):
            result.dumps[engine] = dest
            return
        result.errors.append(f"{engine.value} dump failed")
        self._log.log(f"ERROR: {engine.value} dump failed.")

    def _transfer(self, result: CollectionResult) -> None:
        transfer = self._config.transfer
        if not transfer.host or not transfer.user:
            self._log.log("No target configured, skipping transfer.")
            return

        files = [result.report_path]
        if result.archive_path is not None:
            files.append(result.archive_path)
        files.extend(result.dumps.values())

        self._log.log(f"Transferring files to Debian ({transfer.user}@{transfer.host})...")
        result.transferred = self._host.transfer(files, transfer.destination)
        if result.transferred:
            self._log.log("Files transferred successfully.")
        else:
            result.errors.append("transfer failed")
            self._log.log("ERROR: File transfer failed.")
