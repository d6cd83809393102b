from __future__ import annotations

from datetime import date
from pathlib import Path

from distro_migration.collector.source import FIREWALL_MISSING, SourceCollector
from distro_migration.core.config import MigrationConfig, TransferConfig
from distro_migration.core.types import CommandResult, DatabaseEngine
from distro_migration.execution.mock import InMemoryHost
from distro_migration.report.restore_log import RestoreLog


def make_host() -> InMemoryHost:
    return InMemoryHost(
        command_outputs={
            "rpm -qa": CommandResult(
                exit_code=0,
                stdout="postgresql-server-9.2.24-4.el7.x86_64\nhttpd-2.4.6-97.el7.centos.x86_64\n",
            ),
            "systemctl list-units --type=service --state=running": CommandResult(
                exit_code=0, stdout="httpd.service loaded active running\n"
            ),
            "ip a": CommandResult(exit_code=0, stdout="1: lo: <LOOPBACK,UP>"),
            "firewall-cmd --list-all": CommandResult(exit_code=127, stderr="not found"),
            "/etc/sysconfig/network-scripts/ifcfg-*": CommandResult(exit_code=0, stdout="DEVICE=eth0\n"),
        }
    )


def make_collector(tmp_path: Path, host: InMemoryHost, transfer: TransferConfig) -> SourceCollector:
    config = MigrationConfig(work_dir=tmp_path, transfer=transfer)
    return SourceCollector(
        host,
        config,
        RestoreLog(path=config.collect_log_path),
        today=lambda: date(2024, 3, 1),
    )


def test_collect_builds_report_archive_and_dumps(tmp_path: Path):
    host = make_host()
    collector = make_collector(tmp_path, host, TransferConfig(user="admin", host="10.0.0.5"))

    result = collector.collect()

    assert result.ok
    report = (tmp_path / "migration_report.txt").read_text(encoding="utf-8")
    assert report.splitlines() == [
        "postgresql-server-9.2.24-4.el7.x86_64",
        "httpd-2.4.6-97.el7.centos.x86_64",
        "httpd.service loaded active running",
        "1: lo: <LOOPBACK,UP>",
        "DEVICE=eth0",
        FIREWALL_MISSING,
    ]
    assert result.archive_path == tmp_path / "centos_backup-2024-03-01.tar.gz"
    archive_call = [c for c in host.calls if c[0] == "create_archive"][0]
    assert archive_call[3] == ("/var/lib/pgsql", "/var/lib/mysql")
    assert list(result.dumps) == [DatabaseEngine.postgresql]
    assert result.transferred is True
    transfer = [c for c in host.calls if c[0] == "transfer"][0]
    assert transfer[1] == (
        tmp_path / "migration_report.txt",
        tmp_path / "centos_backup-2024-03-01.tar.gz",
        tmp_path / "postgres_dump.sql",
    )


def test_collect_failed_transfer_is_recorded_not_raised(tmp_path: Path):
    host = make_host()
    host.transfer_ok = False
    collector = make_collector(tmp_path, host, TransferConfig(user="admin", host="10.0.0.5"))

    result = collector.collect()

    assert not result.ok
    assert result.errors == ["transfer failed"]
    assert "ERROR: File transfer failed." in (tmp_path / "migration_analyze.log").read_text(encoding="utf-8")


def test_collect_without_target_skips_transfer(tmp_path: Path):
    host = make_host()
    host.dump_failures = {DatabaseEngine.postgresql}
    collector = make_collector(tmp_path, host, TransferConfig())

    result = collector.collect()

    assert result.transferred is None
    assert result.errors == ["postgresql dump failed"]
    assert not [c for c in host.calls if c[0] == "transfer"]
