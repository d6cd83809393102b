"""
Service enablement, permissions and verification.

Purpose
The last steps on the target host after packages, configs and data are in
place.

Verification
We compare observed host state to what a finished migration should look like.
Checks that do not apply (apache2 not running, MariaDB not running) are
skipped rather than failed. The PostgreSQL socket check always runs, because
a missing socket is the most common leftover problem.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from distro_migration.core.config import MigrationConfig
from distro_migration.core.types import DatabaseEngine, VerificationCheck
from distro_migration.execution.base import Host, HostFilesystem, ServiceManager
from distro_migration.inventory.probe import FactProbe
from distro_migration.reconcile.databases import MYSQL_UNITS
from distro_migration.report.restore_log import RestoreLog

logger = structlog.get_logger(__name__)


def enable_migrated_services(
    services: ServiceManager,
    config: MigrationConfig,
    restore_log: RestoreLog,
) -> dict[str, bool]:
    """
    Enable and start every migrated service that has a unit file.

    Returns unit name to success for the units that exist.
    """
    restore_log.log("Enabling and restarting services...")
    started: dict[str, bool] = {}
    for unit in config.migrated_services:
        if not services.unit_exists(unit):
            continue
        ok = services.enable_start(unit)
        started[unit] = ok
        if ok:
            restore_log.log(f"{unit} restarted.")
        else:
            restore_log.log(f"{unit} failed to start.")
            logger.warning("services.start_failed", unit=unit)
    return started


def fix_permissions(
    host_fs: HostFilesystem,
    config: MigrationConfig,
    restore_log: RestoreLog,
) -> bool:
    """Give the web root to the web server account. True when nothing failed."""
    restore_log.log("Fixing typical permissions...")
    ok = True
    if host_fs.path_exists(config.web_root):
        ok = host_fs.chown_tree(config.web_root, config.web_owner)
        if not ok:
            restore_log.log(f"chown of {config.web_root} failed!")
    restore_log.log("Permissions fix done.")
    return ok


@dataclass
class VerificationOutcome:
    """
    Verification outcome.

    ok
    True only when every executed check passes.

    checks
    Executed checks in order.
    """

    ok: bool
    checks: list[VerificationCheck]

    @property
    def failures(self) -> list[str]:
        return [f"{c.name}: {c.detail}" for c in self.checks if not c.ok]


def verify_restored_data(
    host: Host,
    config: MigrationConfig,
    restore_log: RestoreLog,
) -> VerificationOutcome:
    restore_log.log("Verifying data integrity...")
    checks: list[VerificationCheck] = []
    probe = FactProbe(services=host, filesystem=host)

    if probe.service_active("apache2"):
        restore_log.log("Apache is running.")
        page = host.http_get(config.verify_url)
        checks.append(VerificationCheck(name="apache", ok=page.ok, detail=page.stdout.strip()))

    if probe.socket_present(config.pg_socket_path):
        restore_log.log("PostgreSQL is listening on 5432. Checking DB list...")
        listing = host.run_query(DatabaseEngine.postgresql)
        if not listing.ok:
            restore_log.log("psql -l failed")
        checks.append(
            VerificationCheck(name="postgresql", ok=listing.ok, detail=listing.stdout.strip())
        )
    else:
        restore_log.log("PostgreSQL socket not found. Possibly not running or mismatched version.")
        checks.append(
            VerificationCheck(name="postgresql", ok=False, detail="socket not found")
        )

    if probe.any_service_active(MYSQL_UNITS):
        restore_log.log("MariaDB/MySQL is running. Showing databases...")
        listing = host.run_query(DatabaseEngine.mysql, "SHOW DATABASES;")
        checks.append(VerificationCheck(name="mysql", ok=listing.ok, detail=listing.stdout.strip()))

    ok = all(c.ok for c in checks)
    return VerificationOutcome(ok=ok, checks=checks)
