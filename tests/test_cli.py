from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from distro_migration.cli import cli
from distro_migration.core.config import MigrationConfig
from distro_migration.execution.mock import InMemoryHost


def make_obj(tmp_path: Path, host: InMemoryHost | None = None) -> dict:
    return {
        "config": MigrationConfig(work_dir=tmp_path),
        "host": host or InMemoryHost(),
        "sleep": lambda _: None,
    }


def test_run_check_space(tmp_path: Path):
    runner = CliRunner()

    result = runner.invoke(cli, ["run", "check-space"], obj=make_obj(tmp_path))

    assert result.exit_code == 0
    assert "total 100B" in result.output


def test_run_rollback_without_backup_exits_nonzero(tmp_path: Path):
    runner = CliRunner()

    result = runner.invoke(cli, ["run", "rollback"], obj=make_obj(tmp_path))

    assert result.exit_code == 1
    assert "no backup available" in result.output


def test_run_rejects_unknown_action(tmp_path: Path):
    runner = CliRunner()

    result = runner.invoke(cli, ["run", "reboot"], obj=make_obj(tmp_path))

    assert result.exit_code == 2


def test_menu_exits_on_eleven(tmp_path: Path):
    runner = CliRunner()

    result = runner.invoke(cli, ["menu"], input="nope\n2\n11\n", obj=make_obj(tmp_path))

    assert result.exit_code == 0
    assert "=== Advanced CentOS-to-Debian Migration Toolkit ===" in result.output
    assert "Invalid choice, please try again." in result.output
    assert "Exiting Migration Toolkit." in result.output


def test_config_file_and_work_dir_option(tmp_path: Path):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"work_dir": "/nowhere", "verify_url": "http://127.0.0.1"}))
    obj = {"host": InMemoryHost(), "sleep": lambda _: None}
    runner = CliRunner()

    result = runner.invoke(
        cli,
        ["--config", str(config_path), "--work-dir", str(tmp_path), "run", "check-space"],
        obj=obj,
    )

    assert result.exit_code == 0
    assert obj["config"].work_dir == tmp_path
    assert obj["config"].verify_url == "http://127.0.0.1"


def test_bad_config_file_is_reported(tmp_path: Path):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"wrok_dir": "/backup"}))
    runner = CliRunner()

    result = runner.invoke(cli, ["--config", str(config_path), "run", "verify"], obj={"host": InMemoryHost()})

    assert result.exit_code == 1
    assert "unknown config keys: wrok_dir" in result.output


def test_collect_transfers_to_target(tmp_path: Path):
    host = InMemoryHost()
    runner = CliRunner()

    result = runner.invoke(
        cli,
        ["collect", "--target-user", "admin", "--target-host", "10.0.0.5"],
        obj=make_obj(tmp_path, host),
    )

    assert result.exit_code == 0
    transfers = [c for c in host.calls if c[0] == "transfer"]
    assert transfers[0][2] == "admin@10.0.0.5:/backup"


def test_run_prints_each_message_once(tmp_path: Path):
    runner = CliRunner()

    result = runner.invoke(cli, ["run", "check-space"], obj=make_obj(tmp_path))

    assert result.output.count("/: total 100B, used 40B, free 60B") == 1
    assert "Checking disk space on Debian..." in (tmp_path / "migration_restore.log").read_text(encoding="utf-8")


def test_unknown_log_level_is_reported(tmp_path: Path):
    runner = CliRunner()

    result = runner.invoke(cli, ["--log-level", "LOUD", "run", "check-space"], obj=make_obj(tmp_path))

    assert result.exit_code == 1
    assert "unknown log level: LOUD" in result.output
