from __future__ import annotations

from pathlib import Path

import pytest

from distro_migration.core.config import MigrationConfig
from distro_migration.core.errors import SetupError
from distro_migration.core.types import CommandResult, DatabaseEngine
from distro_migration.execution.mock import InMemoryHost
from distro_migration.report.restore_log import RestoreLog
from distro_migration.restore.configs import restore_configs
from distro_migration.restore.services import (
    enable_migrated_services,
    fix_permissions,
    verify_restored_data,
)

TMP = Path("/tmp/centos_restore")


def make(tmp_path: Path) -> tuple[MigrationConfig, RestoreLog]:
    config = MigrationConfig(work_dir=tmp_path, restore_tmp_dir=TMP)
    return config, RestoreLog(path=config.log_path)


def test_restore_copies_apache_web_and_home(tmp_path: Path):
    config, log = make(tmp_path)
    archive = tmp_path / "centos_backup-2024-03-01.tar.gz"
    archive.write_bytes(b"")
    host = InMemoryHost(
        archives={
            archive: {
                "etc/httpd/conf/httpd.conf": "ServerName web01",
                "var/www/html/index.html": "<h1>hi</h1>",
                "home/alice/.bashrc": "export PS1",
            }
        }
    )

    result = restore_configs(host, host, config, log)

    assert result.restored == ["apache", "home"]
    assert host.files[Path("/etc/apache2/httpd.conf")] == "ServerName web01"
    assert host.files[Path("/var/www/html/index.html")] == "<h1>hi</h1>"
    assert host.files[Path("/home/alice/.bashrc")] == "export PS1"
    assert not any(TMP in p.parents for p in host.files)


def test_restore_skips_apache_without_httpd(tmp_path: Path):
    config, log = make(tmp_path)
    archive = tmp_path / "centos_backup-2024-03-01.tar.gz"
    archive.write_bytes(b"")
    host = InMemoryHost(archives={archive: {"home/bob/notes.txt": "x"}})

    result = restore_configs(host, host, config, log)

    assert result.restored == ["home"]
    assert Path("/etc/apache2/httpd.conf") not in host.files


def test_restore_copy_failure_is_logged_and_next_step_runs(tmp_path: Path):
    config, log = make(tmp_path)
    archive = tmp_path / "centos_backup-2024-03-01.tar.gz"
    archive.write_bytes(b"")
    host = InMemoryHost(
        archives={archive: {"etc/httpd/conf/httpd.conf": "x", "home/a/b": "y"}},
        copy_failures={TMP / "etc" / "httpd" / "conf"},
    )

    result = restore_configs(host, host, config, log)

    assert result.failed == ["apache"]
    assert result.restored == ["home"]


def test_restore_extraction_failure_is_recorded_and_scratch_removed(tmp_path: Path):
    config, log = make(tmp_path)
    archive = tmp_path / "centos_backup-2024-03-01.tar.gz"
    archive.write_bytes(b"")
    host = InMemoryHost(archive_failures={archive})

    result = restore_configs(host, host, config, log)

    assert result.failed == ["extract"]
    assert result.restored == []
    assert host.calls[-1] == ("remove_tree", TMP)
    assert not [c for c in host.calls if c[0] == "copy_tree"]
    assert f"Could not extract {archive}" in config.log_path.read_text(encoding="utf-8")


def test_restore_without_archive_is_setup_error(tmp_path: Path):
    config, log = make(tmp_path)

    with pytest.raises(SetupError):
        restore_configs(InMemoryHost(), InMemoryHost(), config, log)


def test_enable_services_only_touches_existing_units(tmp_path: Path):
    config, log = make(tmp_path)
    host = InMemoryHost(units={"apache2": False, "redis-server": False}, start_failures={"redis-server"})

    started = enable_migrated_services(host, config, log)

    assert started == {"apache2": True, "redis-server": False}
    assert ("enable_start", "nginx") not in host.calls


def test_fix_permissions_chowns_web_root(tmp_path: Path):
    config, log = make(tmp_path)
    host = InMemoryHost(files={Path("/var/www/html/index.html"): "x"})

    assert fix_permissions(host, config, log)
    assert ("chown_tree", Path("/var/www"), "www-data:www-data") in host.calls


def test_fix_permissions_skips_missing_web_root(tmp_path: Path):
    config, log = make(tmp_path)
    host = InMemoryHost()

    assert fix_permissions(host, config, log)
    assert host.calls == []


def test_verify_all_services_healthy(tmp_path: Path):
    config, log = make(tmp_path)
    host = InMemoryHost(
        units={"apache2": True, "mariadb": True},
        sockets={config.pg_socket_path},
        query_results={DatabaseEngine.mysql: CommandResult(exit_code=0, stdout="Database\napp\n")},
    )

    outcome = verify_restored_data(host, config, log)

    assert outcome.ok
    assert [c.name for c in outcome.checks] == ["apache", "postgresql", "mysql"]
    assert ("run_query", DatabaseEngine.mysql, "SHOW DATABASES;") in host.calls


def test_verify_reports_missing_postgres_socket(tmp_path: Path):
    config, log = make(tmp_path)
    host = InMemoryHost()

    outcome = verify_restored_data(host, config, log)

    assert not outcome.ok
    assert outcome.failures == ["postgresql: socket not found"]
