"""
Database reconciliation.

Purpose
Bring each database engine found on the source host to a ready state on the
target host and import its logical dump.

The two engines are deliberately asymmetric.

PostgreSQL
Readiness means the local unix socket exists. When the socket does not appear
after start, we assume a broken cluster and recreate it destructively:
stop, drop (best effort), delete the data directory, create, start, re-probe.
Any import failure is failed_other.

MariaDB and MySQL
Readiness means either service unit is active; no socket is probed and no
remediation is attempted. Import failures are classified through the known
error signatures table, so an existing system table is an acceptable conflict.

Invariant
An import is only attempted from a ready terminal state.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Callable

import structlog

from distro_migration.core.config import MigrationConfig
from distro_migration.core.errors import ClassifiedConflict, UnclassifiedFailure
from distro_migration.core.types import (
    DatabaseEngine,
    DatabaseEngineState,
    DatabaseReport,
    ImportOutcome,
)
from distro_migration.execution.base import (
    ClusterManager,
    DumpImporter,
    HostFilesystem,
    ServiceManager,
)
from distro_migration.inventory.probe import FactProbe
from distro_migration.inventory.report import InventoryReport
from distro_migration.reconcile.settle import wait_until
from distro_migration.reconcile.signatures import (
    KNOWN_SIGNATURES,
    ErrorSignature,
    check_import_result,
)
from distro_migration.report.restore_log import RestoreLog

logger = structlog.get_logger(__name__)

POSTGRES_KEY = "postgresql-server"
MYSQL_KEYS = ("mariadb-server", "mysql-server")
POSTGRES_UNIT = "postgresql"
MYSQL_UNITS = ("mariadb", "mysql")


def manual_remediation_steps(version: str, data_root: Path, cluster: str = "main") -> str:
    """Operator instructions for fixing a PostgreSQL cluster by hand."""
    return (
        "Manual steps:\n"
        f"1) Remove or fix {data_root / version / cluster}\n"
        f"2) Run: pg_createcluster {version} {cluster}\n"
        f"3) systemctl start {POSTGRES_UNIT}\n"
    )


class DatabaseReconciler:
    """
    Per engine decision procedure.

    services, filesystem, clusters and importer are host collaborators.
    A single Host object can be passed for all four.

    sleep is injected into the settle wait so tests run instantly.

    signatures is the error signature table used to classify MySQL import
    failures.
    """

    def __init__(
        self,
        services: ServiceManager,
        filesystem: HostFilesystem,
        clusters: ClusterManager,
        importer: DumpImporter,
        config: MigrationConfig,
        restore_log: RestoreLog,
        sleep: Callable[[float], None] = time.sleep,
        signatures: tuple[ErrorSignature, ...] = KNOWN_SIGNATURES,
    ) -> None:
        self._services = services
        self._fs = filesystem
        self._clusters = clusters
        self._importer = importer
        self._config = config
        self._log = restore_log
        self._sleep = sleep
        self._signatures = signatures

    def reconcile(self, report: InventoryReport) -> list[DatabaseReport]:
        """Run both engines, PostgreSQL first."""
        return [self.reconcile_postgresql(report), self.reconcile_mysql(report)]

    def _say(self, result: DatabaseReport, message: str) -> None:
        result.messages.append(message)
        self._log.log(message)

    def _probe(self, report: InventoryReport) -> FactProbe:
        return FactProbe(report=report, services=self._services, filesystem=self._fs)

    def _pg_socket_ready(self, probe: FactProbe) -> bool:
        return wait_until(
            lambda: probe.socket_present(self._config.pg_socket_path),
            self._config.settle,
            sleep=self._sleep,
        )

    def _mysql_active(self, probe: FactProbe) -> bool:
        return wait_until(
            lambda: probe.any_service_active(MYSQL_UNITS),
            self._config.settle,
            sleep=self._sleep,
        )

    def detect_pg_version(self) -> str:
        """First child of the PostgreSQL data root, or the configured fallback."""
        children = self._fs.list_dir(self._config.pg_data_root)
        if children:
            return children[0]
        return self._config.pg_fallback_version

    # postgresql

    def reconcile_postgresql(self, report: InventoryReport) -> DatabaseReport:
        result = DatabaseReport(engine=DatabaseEngine.postgresql)
        dump = self._config.pg_dump_path
        probe = self._probe(report)

        if not probe.has_fact(POSTGRES_KEY):
            result.advance(DatabaseEngineState.not_detected)
            return result

        result.advance(DatabaseEngineState.detected)
        self._say(result, "Detected PostgreSQL in CentOS. Checking service & socket...")
        if not self._services.enable_start(POSTGRES_UNIT):
            logger.info("databases.enable_start_failed", unit=POSTGRES_UNIT)

        if self._pg_socket_ready(probe):
            result.advance(DatabaseEngineState.service_active_with_socket)
        else:
            if probe.service_active(POSTGRES_UNIT):
                result.advance(DatabaseEngineState.service_active_no_socket)
            else:
                result.advance(DatabaseEngineState.service_inactive)
            self._say(
                result,
                "PostgreSQL socket not found. Trying to forcibly drop & re-create cluster...",
            )
            self._recreate_cluster(result, probe)

        if not dump.is_file():
            return result

        result.dump_path = dump
        if not result.ready:
            self._say(result, "PostgreSQL not active or socket missing, cannot import.")
            return result

        self._say(result, f"Importing PostgreSQL dump ({dump})...")
        outcome = self._importer.import_dump(DatabaseEngine.postgresql, dump)
        if outcome.ok:
            result.outcome = ImportOutcome.success
            self._say(result, "PostgreSQL dump imported.")
        else:
            result.outcome = ImportOutcome.failed_other
            result.error_text = outcome.stderr
            self._say(result, "Failed to import Postgres dump!")
            logger.warning("databases.pg_import_failed", exit_code=outcome.exit_code)
        return result

    def _recreate_cluster(self, result: DatabaseReport, probe: FactProbe) -> None:
        version = self.detect_pg_version()
        result.version = version
        cluster = self._config.pg_cluster_name
        logger.warning("databases.pg_recreate_cluster", version=version)

        self._services.stop(POSTGRES_UNIT)
        self._clusters.drop_cluster(version)
        self._clusters.delete_cluster_directory(version)

        if not self._clusters.create_cluster(version):
            result.advance(DatabaseEngineState.cluster_recreate_failed)
            self._say(result, "Could not create cluster automatically. Please fix manually.")
            self._emit_manual_steps(result, version, cluster)
            return

        result.advance(DatabaseEngineState.cluster_recreated)
        self._say(result, f"Cluster {version} re-created successfully.")
        self._services.start(POSTGRES_UNIT)

        if self._pg_socket_ready(probe):
            result.advance(DatabaseEngineState.service_active_with_socket)
            self._say(result, "Force fix success: PostgreSQL cluster re-inited, socket present.")
            return

        result.advance(DatabaseEngineState.cluster_recreate_failed)
        self._say(result, "Force fix failed: Postgres socket still missing. Please do it manually.")
        self._emit_manual_steps(result, version, cluster)

    def _emit_manual_steps(self, result: DatabaseReport, version: str, cluster: str) -> None:
        steps = manual_remediation_steps(version, self._config.pg_data_root, cluster)
        result.messages.append(steps)
        self._log.write_block(steps)

    # mariadb and mysql

    def reconcile_mysql(self, report: InventoryReport) -> DatabaseReport:
        result = DatabaseReport(engine=DatabaseEngine.mysql)
        dump = self._config.mysql_dump_path
        probe = self._probe(report)

        if not probe.has_any_fact(MYSQL_KEYS):
            result.advance(DatabaseEngineState.not_detected)
            return result

        result.advance(DatabaseEngineState.detected)
        for unit in MYSQL_UNITS:
            self._services.enable_start(unit)

        if not self._mysql_active(probe):
            result.advance(DatabaseEngineState.service_inactive)
            self._say(result, "MariaDB/MySQL not running, cannot import.")
            if dump.is_file():
                result.dump_path = dump
            return result

        result.advance(DatabaseEngineState.service_active_with_socket)
        if not dump.is_file():
            return result

        result.dump_path = dump
        self._say(result, f"Importing MariaDB/MySQL dump ({dump})...")
        outcome = self._importer.import_dump(DatabaseEngine.mysql, dump)
        result.error_text = outcome.stderr
        error_path = self._config.mysql_error_path
        self._save_error_stream(outcome.stderr, error_path)

        try:
            check_import_result(DatabaseEngine.mysql, outcome, self._signatures)
        except ClassifiedConflict as exc:
            result.outcome = exc.outcome
            if exc.outcome == ImportOutcome.failed_system_conflict:
                self._say(result, "Some system tables existed, ignoring. User DBs are likely imported.")
            else:
                self._say(result, f"MySQL import failed ({exc.signature}). See {error_path}")
            logger.info("databases.mysql_import_classified", signature=exc.signature,
                        outcome=exc.outcome.value)
        except UnclassifiedFailure as exc:
            result.outcome = ImportOutcome.failed_other
            self._say(result, f"Failed to import MySQL dump! See {error_path}")
            logger.warning("databases.mysql_import_failed", error=str(exc))
        else:
            result.outcome = ImportOutcome.success
            self._say(result, "MariaDB/MySQL dump imported.")
        return result

    def _save_error_stream(self, text: str, path: Path) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as exc:
            self._log.log(f"Could not write {path}: {exc}")
            logger.warning("databases.error_file_unwritable", path=str(path), error=str(exc))
