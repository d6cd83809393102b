"""
Configuration.

Every path the toolkit touches is a named field here. Components receive the
config at construction time; nothing reads module level globals.

File format
load_config reads a JSON object whose keys are MigrationConfig field names.
Nested objects "settle" and "transfer" map onto SettleConfig and TransferConfig.

Schema example
{
  "work_dir": "/backup",
  "pg_fallback_version": "15",
  "settle": {"interval_seconds": 1.0, "max_attempts": 6},
  "transfer": {"user": "admin", "host": "10.0.0.5"}
}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, replace
from datetime import date
from pathlib import Path
from typing import Any

from distro_migration.core.errors import ConfigError


@dataclass(frozen=True)
class SettleConfig:
    """
    Bounded wait after starting a service.

    interval_seconds
    Sleep between two readiness checks.

    max_attempts
    Number of readiness checks before giving up.
    """

    interval_seconds: float = 1.0
    max_attempts: int = 6


@dataclass(frozen=True)
class TransferConfig:
    """
    Where the source host collector copies its bundle.

    user and host identify the Debian target for scp.
    remote_dir is the work dir on the target.
    """

    user: str = ""
    host: str = ""
    remote_dir: str = "/backup"

    @property
    def destination(self) -> str:
        return f"{self.user}@{self.host}:{self.remote_dir}"


@dataclass(frozen=True)
class MigrationConfig:
    """
    Migration configuration.

    work_dir
    Shared directory holding the report, archives, dumps, log and summary.

    pg_socket_path
    Unix socket whose presence means PostgreSQL accepts local connections.

    pg_data_root
    Directory whose first child names the installed PostgreSQL version.

    package_mapping
    Overrides on top of the default source to Debian package mapping.
    """

    work_dir: Path = Path("/backup")
    report_name: str = "migration_report.txt"
    source_archive_glob: str = "centos_backup-*.tar.gz"
    source_archive_prefix: str = "centos_backup"
    pg_dump_name: str = "postgres_dump.sql"
    mysql_dump_name: str = "mysql_dump.sql"
    mysql_error_name: str = "mysql_import.err"
    log_name: str = "migration_restore.log"
    collect_log_name: str = "migration_analyze.log"
    summary_name: str = "final_summary.txt"
    file_list_name: str = "file_list.txt"
    analysis_name: str = "analysis_summary.txt"
    target_backup_prefix: str = "debian_backup"
    restore_tmp_dir: Path = Path("/tmp/centos_restore")

    pg_socket_path: Path = Path("/var/run/postgresql/.s.PGSQL.5432")
    pg_data_root: Path = Path("/var/lib/postgresql")
    pg_fallback_version: str = "15"
    pg_cluster_name: str = "main"

    target_backup_sources: tuple[str, ...] = ("/etc", "/var/www", "/var/lib", "/home", "/opt")
    source_backup_sources: tuple[str, ...] = ("/etc", "/var/www", "/home", "/root", "/opt")
    source_backup_excludes: tuple[str, ...] = ("/var/lib/pgsql", "/var/lib/mysql")
    rollback_root: Path = Path("/")

    apache_conf_dir: Path = Path("/etc/apache2")
    web_root: Path = Path("/var/www")
    web_owner: str = "www-data:www-data"
    home_root: Path = Path("/home")
    disk_check_path: Path = Path("/")
    migrated_services: tuple[str, ...] = (
        "apache2",
        "nginx",
        "postgresql",
        "mariadb",
        "mysql",
        "redis-server",
    )
    analysis_keys: tuple[str, ...] = (
        "pgsql",
        "postgresql",
        "mysql",
        "mariadb",
        "httpd",
        "nginx",
        "redis",
    )
    verify_url: str = "http://localhost"
    package_mapping: dict[str, str] = field(default_factory=dict)

    settle: SettleConfig = field(default_factory=SettleConfig)
    transfer: TransferConfig = field(default_factory=TransferConfig)

    @property
    def report_path(self) -> Path:
        return self.work_dir / self.report_name

    @property
    def pg_dump_path(self) -> Path:
        return self.work_dir / self.pg_dump_name

    @property
    def mysql_dump_path(self) -> Path:
        return self.work_dir / self.mysql_dump_name

    @property
    def mysql_error_path(self) -> Path:
        return self.work_dir / self.mysql_error_name

    @property
    def log_path(self) -> Path:
        return self.work_dir / self.log_name

    @property
    def collect_log_path(self) -> Path:
        return self.work_dir / self.collect_log_name

    @property
    def summary_path(self) -> Path:
        return self.work_dir / self.summary_name

    @property
    def file_list_path(self) -> Path:
        return self.work_dir / self.file_list_name

    @property
    def analysis_path(self) -> Path:
        return self.work_dir / self.analysis_name

    def source_archive_path(self, day: date) -> Path:
        return self.work_dir / f"{self.source_archive_prefix}-{day.isoformat()}.tar.gz"

    def target_backup_path(self, day: date) -> Path:
        return self.work_dir / f"{self.target_backup_prefix}-{day.isoformat()}.tar.gz"

    def find_source_archive(self) -> Path | None:
        """Return the first source archive in sorted order, if any."""
        matches = sorted(self.work_dir.glob(self.source_archive_glob))
        return matches[0] if matches else None

    def find_target_backup(self) -> Path | None:
        """Return the most recent target backup archive, if any."""
        matches = sorted(self.work_dir.glob(f"{self.target_backup_prefix}-*.tar.gz"))
        return matches[-1] if matches else None


_PATH_FIELDS = {"work_dir", "restore_tmp_dir", "pg_socket_path", "pg_data_root",
                "rollback_root", "apache_conf_dir", "web_root", "home_root", "disk_check_path"}
_TUPLE_FIELDS = {"target_backup_sources", "source_backup_sources", "source_backup_excludes",
                 "migrated_services", "analysis_keys"}


def _nested(cls: type, raw: Any, name: str) -> Any:
    if not isinstance(raw, dict):
        raise ConfigError(f"{name} must be an object")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigError(f"unknown {name} keys: {', '.join(unknown)}")
    return cls(**raw)


def config_from_dict(data: dict[str, Any], base: MigrationConfig | None = None) -> MigrationConfig:
    """
    Build a MigrationConfig from a plain dict.

    Keys missing from data keep the values of base.
    Unknown keys raise ConfigError so typos do not silently fall back to defaults.
    """
    base = base or MigrationConfig()
    known = {f.name for f in fields(MigrationConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"unknown config keys: {', '.join(unknown)}")

    updates: dict[str, Any] = {}
    for key, value in data.items():
        if key == "settle":
            updates[key] = _nested(SettleConfig, value, key)
        elif key == "transfer":
            updates[key] = _nested(TransferConfig, value, key)
        elif key in _PATH_FIELDS:
            updates[key] = Path(str(value))
        elif key == "package_mapping":
            if not isinstance(value, dict):
                raise ConfigError("package_mapping must be an object")
            updates[key] = {str(k): str(v) for k, v in value.items()}
        elif key in _TUPLE_FIELDS:
            if not isinstance(value, list):
                raise ConfigError(f"{key} must be a list")
            updates[key] = tuple(str(v) for v in value)
        else:
            updates[key] = value
    try:
        return replace(base, **updates)
    except TypeError as exc:
        raise ConfigError(str(exc)) from exc


def load_config(path: Path) -> MigrationConfig:
    """Read a JSON config file."""
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"config file is not valid JSON: {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError("config file must contain a JSON object")
    return config_from_dict(data)
