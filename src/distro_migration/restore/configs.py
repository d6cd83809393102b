"""
Configuration restoration.

Purpose
Unpack the source host archive into a scratch directory and copy the parts
that carry over to Debian:

1) Apache: etc/httpd/conf/* into the apache2 config dir, and var/www/* into the
   web root. Only when the archive has etc/httpd
2) Home directories: home/* into /home

The scratch directory is removed afterwards, even when a copy failed.
Extraction and copy failures are logged in the result and the next step runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import structlog

from distro_migration.core.config import MigrationConfig
from distro_migration.core.errors import SetupError
from distro_migration.execution.base import ArchiveTool, HostFilesystem
from distro_migration.report.restore_log import RestoreLog

logger = structlog.get_logger(__name__)


@dataclass
class ConfigRestoreResult:
    """
    What was restored.

    restored lists step names that succeeded.
    failed lists step names whose copy returned failure.
    """

    archive: Path
    restored: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def restore_configs(
    host_fs: HostFilesystem,
    archives: ArchiveTool,
    config: MigrationConfig,
    restore_log: RestoreLog,
) -> ConfigRestoreResult:
    """Extract the source archive and copy configs into place."""
    archive = config.find_source_archive()
    if archive is None:
        raise SetupError(
            f"source archive matching {config.source_archive_glob} not found in {config.work_dir}"
        )

    restore_log.log("Restoring and adapting configurations...")
    tmp = config.restore_tmp_dir
    result = ConfigRestoreResult(archive=archive)
    if not archives.extract_archive(archive, tmp):
        result.failed.append("extract")
        restore_log.log(f"Could not extract {archive}")
        logger.warning("configs.extract_failed", archive=str(archive))
        host_fs.remove_tree(tmp)
        return result

    try:
        if host_fs.path_exists(tmp / "etc" / "httpd"):
            apache_ok = host_fs.copy_tree(tmp / "etc" / "httpd" / "conf", config.apache_conf_dir)
            www_ok = True
            if host_fs.path_exists(tmp / "var" / "www"):
                www_ok = host_fs.copy_tree(tmp / "var" / "www", config.web_root)
            _record(result, restore_log, "apache", apache_ok and www_ok,
                    "Apache configs restored.", "Apache config restore failed!")

        if host_fs.path_exists(tmp / "home"):
            home_ok = host_fs.copy_tree(tmp / "home", config.home_root)
            _record(result, restore_log, "home", home_ok,
                    "Home dirs restored.", "Home dir restore failed!")
    finally:
        host_fs.remove_tree(tmp)

    restore_log.log("Basic config restoration done.")
    return result


def _record(
    result: ConfigRestoreResult,
    restore_log: RestoreLog,
    step: str,
    ok: bool,
    ok_message: str,
    fail_message: str,
) -> None:
    if ok:
        result.restored.append(step)
        restore_log.log(ok_message)
    else:
        result.failed.append(step)
        restore_log.log(fail_message)
        logger.warning("configs.copy_failed", step=step)
