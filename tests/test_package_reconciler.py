from __future__ import annotations

from pathlib import Path

from distro_migration.core.types import PackageAction
from distro_migration.execution.mock import InMemoryHost
from distro_migration.inventory.mapping import DEFAULT_PACKAGE_MAPPING, merge_mapping
from distro_migration.inventory.report import InventoryReport
from distro_migration.reconcile.packages import PackageReconciler
from distro_migration.report.restore_log import RestoreLog

REPORT = InventoryReport.from_text(
    "\n".join(
        [
            "httpd-2.4.6-97.el7.centos.x86_64",
            "nginx-1.20.1-10.el7.x86_64",
            "redis-3.2.12-2.el7.x86_64",
            "  httpd.service  loaded active running The Apache HTTP Server",
        ]
    )
)


def make_reconciler(host: InMemoryHost, tmp_path: Path) -> PackageReconciler:
    return PackageReconciler(host, DEFAULT_PACKAGE_MAPPING, RestoreLog(path=tmp_path / "restore.log"))


def by_target(decisions):
    return {d.target_package: d.action for d in decisions}


def test_entries_absent_from_report_are_not_installed(tmp_path: Path):
    host = InMemoryHost()

    decisions = make_reconciler(host, tmp_path).reconcile(REPORT)

    installed = [c[1] for c in host.calls if c[0] == "install"]
    assert sorted(installed) == ["apache2", "nginx", "redis-server"]
    assert "postgresql" not in by_target(decisions)
    assert "mariadb-server" not in by_target(decisions)


def test_installed_target_is_already_installed_never_install(tmp_path: Path):
    host = InMemoryHost(installed={"redis-server"})

    decisions = make_reconciler(host, tmp_path).reconcile(REPORT)

    assert by_target(decisions)["redis-server"] == PackageAction.already_installed
    assert ("install", "redis-server") not in host.calls


def test_install_failure_does_not_abort_batch(tmp_path: Path):
    host = InMemoryHost(install_failures={"apache2"})

    decisions = make_reconciler(host, tmp_path).reconcile(REPORT)

    actions = by_target(decisions)
    assert actions["apache2"] == PackageAction.install_failed
    assert actions["nginx"] == PackageAction.install
    assert actions["redis-server"] == PackageAction.install
    assert "Error installing apache2" in (tmp_path / "restore.log").read_text(encoding="utf-8")


def test_second_pass_is_idempotent(tmp_path: Path):
    host = InMemoryHost(install_failures={"nginx"})
    reconciler = make_reconciler(host, tmp_path)

    first = reconciler.reconcile(REPORT)
    second = reconciler.reconcile(REPORT)

    succeeded = [d.target_package for d in first if d.action == PackageAction.install]
    assert succeeded
    second_actions = by_target(second)
    for target in succeeded:
        assert second_actions[target] == PackageAction.already_installed
    assert second_actions["nginx"] == PackageAction.install_failed


def test_mapping_overrides_apply_on_top_of_defaults():
    merged = merge_mapping({"httpd": "apache2-bin", "memcached": "memcached"})

    assert merged["httpd"] == "apache2-bin"
    assert merged["memcached"] == "memcached"
    assert merged["redis"] == "redis-server"
    assert DEFAULT_PACKAGE_MAPPING["httpd"] == "apache2"
