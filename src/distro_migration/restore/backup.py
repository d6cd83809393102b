"""
Target backup and rollback.

Purpose
Before anything on the Debian host is changed, the operator archives the
current system. Rollback extracts the most recent archive over the root
filesystem.

Archive naming
<work_dir>/<target_backup_prefix>-YYYY-MM-DD.tar.gz

Older archives are kept. Rollback always uses the newest one by name, which
sorts by date. A second backup on the same day replaces that day's archive.

This is not transactional. Files created after the backup are not removed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Callable

import structlog

from distro_migration.core.config import MigrationConfig
from distro_migration.core.errors import CollaboratorFailure
from distro_migration.execution.base import ArchiveTool
from distro_migration.report.restore_log import RestoreLog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RollbackResult:
    """
    Outcome of a rollback attempt.

    archive is None when no backup existed. In that case nothing was extracted.
    """

    ok: bool
    archive: Path | None
    message: str


def create_target_backup(
    archives: ArchiveTool,
    config: MigrationConfig,
    restore_log: RestoreLog,
    today: Callable[[], date] = date.today,
) -> Path:
    """
    Archive the target host before mutation.

    The work dir is excluded so the archive never contains itself or the
    migration inputs.
    """
    dest = config.target_backup_path(today())
    restore_log.log("Creating Debian system backup...")
    ok = archives.create_archive(
        dest,
        sources=config.target_backup_sources,
        excludes=(str(config.work_dir),),
    )
    if not ok:
        restore_log.log(f"Backup failed: {dest}")
        raise CollaboratorFailure(f"could not create backup archive {dest}")
    restore_log.log(f"Backup completed: {dest}")
    return dest


def rollback_to_backup(
    archives: ArchiveTool,
    config: MigrationConfig,
    restore_log: RestoreLog,
) -> RollbackResult:
    """Extract the newest target backup over the rollback root."""
    restore_log.log("Rolling back to Debian backup...")
    archive = config.find_target_backup()
    if archive is None:
        restore_log.log("No backup available!")
        return RollbackResult(ok=False, archive=None, message="no backup available")

    logger.warning("backup.rollback", archive=str(archive), root=str(config.rollback_root))
    if archives.extract_archive(archive, config.rollback_root):
        restore_log.log("Rollback successful.")
        return RollbackResult(ok=True, archive=archive, message="rollback successful")

    restore_log.log("Rollback failed!")
    return RollbackResult(ok=False, archive=archive, message="extraction failed")
