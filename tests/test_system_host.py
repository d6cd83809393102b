from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from distro_migration.core.errors import CollaboratorFailure
from distro_migration.core.types import DatabaseEngine
from distro_migration.execution import system
from distro_migration.execution.system import COMMAND_NOT_EXECUTABLE, COMMAND_NOT_FOUND, SystemHost


class FakeRun:
    def __init__(self, returncode: int = 0, stdout: bytes = b"", stderr: bytes = b"") -> None:
        self.calls: list[list[str]] = []
        self.kwargs: list[dict] = []
        self._result = SimpleNamespace(returncode=returncode, stdout=stdout, stderr=stderr)

    def __call__(self, argv, **kwargs):
        self.calls.append(argv)
        self.kwargs.append(kwargs)
        return self._result


@pytest.fixture
def fake_run(monkeypatch):
    fake = FakeRun()
    monkeypatch.setattr(system.subprocess, "run", fake)
    return fake


def test_package_and_service_commands(fake_run):
    host = SystemHost()

    assert host.install("apache2")
    assert host.enable_start("postgresql")
    assert host.is_active("mariadb")

    assert fake_run.calls == [
        ["apt-get", "install", "-y", "apache2"],
        ["systemctl", "enable", "--now", "postgresql"],
        ["systemctl", "is-active", "--quiet", "mariadb"],
    ]


def test_is_installed_requires_installed_status(monkeypatch):
    monkeypatch.setattr(system.subprocess, "run", FakeRun(stdout=b"install ok installed"))
    assert SystemHost().is_installed("nginx")

    monkeypatch.setattr(system.subprocess, "run", FakeRun(stdout=b"deinstall ok config-files"))
    assert not SystemHost().is_installed("nginx")


def test_unit_exists_matches_exact_unit(monkeypatch):
    fake = FakeRun(stdout=b"mysql.service disabled enabled\n")
    monkeypatch.setattr(system.subprocess, "run", fake)

    assert SystemHost().unit_exists("mysql")
    assert not SystemHost().unit_exists("mariadb")


def test_cluster_commands_use_configured_cluster(fake_run, tmp_path: Path):
    data = tmp_path / "15" / "main"
    data.mkdir(parents=True)
    (data / "PG_VERSION").write_text("15", encoding="utf-8")
    host = SystemHost(pg_data_root=tmp_path)

    host.drop_cluster("15")
    host.delete_cluster_directory("15")
    host.create_cluster("15")

    assert fake_run.calls == [
        ["pg_dropcluster", "--stop", "15", "main"],
        ["pg_createcluster", "15", "main"],
    ]
    assert not data.exists()


def test_mysql_import_feeds_dump_on_stdin(fake_run, tmp_path: Path):
    dump = tmp_path / "mysql_dump.sql"
    dump.write_text("CREATE DATABASE app;", encoding="utf-8")

    SystemHost().import_dump(DatabaseEngine.mysql, dump)
    SystemHost().import_dump(DatabaseEngine.postgresql, tmp_path / "postgres_dump.sql")

    assert fake_run.calls[0] == ["mysql"]
    assert "stdin" in fake_run.kwargs[0]
    assert fake_run.calls[1] == ["sudo", "-u", "postgres", "psql", "-f", str(tmp_path / "postgres_dump.sql")]


def test_archive_commands(fake_run, tmp_path: Path):
    host = SystemHost()

    host.create_archive(tmp_path / "b.tar.gz", ["/etc", "/home"], excludes=["/backup"])
    host.extract_archive(tmp_path / "b.tar.gz", tmp_path / "out")

    assert fake_run.calls[0] == [
        "tar", "--exclude=/backup", "-czpf", str(tmp_path / "b.tar.gz"), "/etc", "/home",
    ]
    assert fake_run.calls[1] == ["tar", "-xzpf", str(tmp_path / "b.tar.gz"), "-C", str(tmp_path / "out")]


def test_missing_executable_is_status_127(monkeypatch):
    def boom(argv, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", argv[0])

    monkeypatch.setattr(system.subprocess, "run", boom)

    result = SystemHost().run(["pg_createcluster", "15", "main"])

    assert result.exit_code == COMMAND_NOT_FOUND
    assert not result.ok


def test_permission_error_is_status_126(monkeypatch):
    def denied(argv, **kwargs):
        raise PermissionError(13, "Permission denied", argv[0])

    monkeypatch.setattr(system.subprocess, "run", denied)

    result = SystemHost().run(["pg_createcluster", "15", "main"])

    assert result.exit_code == COMMAND_NOT_EXECUTABLE
    assert "Permission denied" in result.stderr


def test_unstattable_socket_path_is_absent(monkeypatch, tmp_path: Path):
    def denied(path, *args, **kwargs):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr(system.os, "stat", denied)

    assert not SystemHost().socket_exists(tmp_path / ".s.PGSQL.5432")


def test_unreadable_disk_usage_is_collaborator_failure(monkeypatch, tmp_path: Path):
    def denied(path):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr(system.shutil, "disk_usage", denied)

    with pytest.raises(CollaboratorFailure):
        SystemHost().disk_usage(tmp_path)


def test_filesystem_helpers(tmp_path: Path):
    src = tmp_path / "src"
    (src / "conf.d").mkdir(parents=True)
    (src / "httpd.conf").write_text("Listen 80", encoding="utf-8")
    (src / "conf.d" / "ssl.conf").write_text("Listen 443", encoding="utf-8")
    dst = tmp_path / "dst"
    dst.mkdir()
    (dst / "existing.conf").write_text("keep", encoding="utf-8")
    host = SystemHost()

    assert host.copy_tree(src, dst)
    assert (dst / "httpd.conf").read_text(encoding="utf-8") == "Listen 80"
    assert (dst / "conf.d" / "ssl.conf").read_text(encoding="utf-8") == "Listen 443"
    assert (dst / "existing.conf").exists()
    assert host.list_dir(src) == ["conf.d", "httpd.conf"]
    assert host.list_dir(tmp_path / "missing") == []
    assert not host.socket_exists(src / "httpd.conf")
    assert not host.socket_exists(tmp_path / "missing.sock")

    host.remove_tree(src)
    host.remove_tree(tmp_path / "missing")
    assert not src.exists()
