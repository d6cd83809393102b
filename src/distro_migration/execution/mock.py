"""
In memory host.

This host is used for tests and local simulations.
It behaves like a tiny Debian machine: a set of installed packages, a table
of service units, a set of unix socket paths, and a dict backed filesystem.

Features
- Records every mutating call in calls, in order
- Can inject failures for installs, cluster creation, imports and archives
- Models the PostgreSQL socket appearing when the service starts on a healthy cluster
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from distro_migration.core.types import CommandResult, DatabaseEngine, DiskUsage
from distro_migration.execution.base import Host, SourceHost


@dataclass
class InMemoryHost(Host, SourceHost):
    """
    In memory host.

    units
    Known service units mapped to their active flag.

    pg_socket_path
    Socket published while the postgresql unit runs on a healthy cluster.

    pg_cluster_healthy
    When False, starting postgresql does not publish the socket. A successful
    create_cluster makes the cluster healthy, unless
    cluster_stays_broken is set.

    start_failures
    Units whose start never makes them active.

    import_results
    Engine to CommandResult returned by import_dump. Defaults to success.

    dirs
    Directory path to list of child names, for list_dir.

    files
    Path to text content, for archives, dumps and copy_tree.
    """

    installed: set[str] = field(default_factory=set)
    install_failures: set[str] = field(default_factory=set)
    units: dict[str, bool] = field(default_factory=dict)
    start_failures: set[str] = field(default_factory=set)
    sockets: set[Path] = field(default_factory=set)
    pg_socket_path: Path = Path("/var/run/postgresql/.s.PGSQL.5432")
    pg_cluster_healthy: bool = True
    cluster_stays_broken: bool = False
    create_cluster_ok: bool = True
    import_results: dict[DatabaseEngine, CommandResult] = field(default_factory=dict)
    query_results: dict[DatabaseEngine, CommandResult] = field(default_factory=dict)
    dirs: dict[Path, list[str]] = field(default_factory=dict)
    files: dict[Path, str] = field(default_factory=dict)
    archives: dict[Path, dict[str, str]] = field(default_factory=dict)
    archive_failures: set[Path] = field(default_factory=set)
    copy_failures: set[Path] = field(default_factory=set)
    command_outputs: dict[str, CommandResult] = field(default_factory=dict)
    dump_failures: set[DatabaseEngine] = field(default_factory=set)
    transfer_ok: bool = True
    disk: DiskUsage = DiskUsage(path="/", total=100, used=40, free=60)
    calls: list[tuple[Any, ...]] = field(default_factory=list)

    # packages

    def install(self, name: str) -> bool:
        self.calls.append(("install", name))
        if name in self.install_failures:
            return False
        self.installed.add(name)
        return True

    def is_installed(self, name: str) -> bool:
        return name in self.installed

    # services

    def _refresh_pg_socket(self) -> None:
        if self.units.get("postgresql") and self.pg_cluster_healthy:
            self.sockets.add(self.pg_socket_path)
        else:
            self.sockets.discard(self.pg_socket_path)

    def start(self, name: str) -> bool:
        self.calls.append(("start", name))
        if name not in self.units:
            return False
        if name in self.start_failures:
            return False
        self.units[name] = True
        self._refresh_pg_socket()
        return True

    def enable_start(self, name: str) -> bool:
        self.calls.append(("enable_start", name))
        if name not in self.units:
            return False
        if name in self.start_failures:
            return False
        self.units[name] = True
        self._refresh_pg_socket()
        return True

    def stop(self, name: str) -> bool:
        self.calls.append(("stop", name))
        if name not in self.units:
            return False
        self.units[name] = False
        self._refresh_pg_socket()
        return True

    def is_active(self, name: str) -> bool:
        return bool(self.units.get(name, False))

    def unit_exists(self, name: str) -> bool:
        return name in self.units

    # filesystem

    def socket_exists(self, path: Path) -> bool:
        return path in self.sockets

    def path_exists(self, path: Path) -> bool:
        if path in self.files or path in self.dirs:
            return True
        return any(path in p.parents for p in self.files)

    def list_dir(self, path: Path) -> list[str]:
        return sorted(self.dirs.get(path, []))

    def remove_tree(self, path: Path) -> None:
        self.calls.append(("remove_tree", path))
        self.dirs.pop(path, None)
        parent = self.dirs.get(path.parent)
        if parent is not None and path.name in parent:
            parent.remove(path.name)
        for p in [p for p in self.files if path in p.parents]:
            del self.files[p]

    def copy_tree(self, src: Path, dst: Path) -> bool:
        self.calls.append(("copy_tree", src, dst))
        if src in self.copy_failures:
            return False
        for p, text in list(self.files.items()):
            if src in p.parents:
                self.files[dst / p.relative_to(src)] = text
        return True

    def chown_tree(self, path: Path, owner: str) -> bool:
        self.calls.append(("chown_tree", path, owner))
        return True

    def disk_usage(self, path: Path) -> DiskUsage:
        return DiskUsage(path=str(path), total=self.disk.total, used=self.disk.used, free=self.disk.free)

    # postgresql clusters

    def drop_cluster(self, version: str) -> bool:
        self.calls.append(("drop_cluster", version))
        return False

    def delete_cluster_directory(self, version: str) -> None:
        self.calls.append(("delete_cluster_directory", version))

    def create_cluster(self, version: str) -> bool:
        self.calls.append(("create_cluster", version))
        if not self.create_cluster_ok:
            return False
        if not self.cluster_stays_broken:
            self.pg_cluster_healthy = True
        return True

    # dumps and queries

    def import_dump(self, engine: DatabaseEngine, dump_path: Path) -> CommandResult:
        self.calls.append(("import_dump", engine, dump_path))
        return self.import_results.get(engine, CommandResult(exit_code=0))

    def run_query(self, engine: DatabaseEngine, query: str | None = None) -> CommandResult:
        self.calls.append(("run_query", engine, query))
        return self.query_results.get(engine, CommandResult(exit_code=0, stdout="postgres\n"))

    def dump_database(self, engine: DatabaseEngine, dest: Path) -> bool:
        self.calls.append(("dump_database", engine, dest))
        if engine in self.dump_failures:
            return False
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(f"-- {engine.value} dump\n", encoding="utf-8")
        return True

    # archives

    def create_archive(
        self,
        dest: Path,
        sources: Sequence[str],
        excludes: Sequence[str] = (),
    ) -> bool:
        self.calls.append(("create_archive", dest, tuple(sources), tuple(excludes)))
        if dest in self.archive_failures:
            return False
        self.archives[dest] = {}
        if dest.parent.exists():
            dest.write_bytes(b"")
        return True

    def extract_archive(self, archive: Path, dest: Path) -> bool:
        self.calls.append(("extract_archive", archive, dest))
        if archive in self.archive_failures:
            return False
        for member, text in self.archives.get(archive, {}).items():
            self.files[dest / member] = text
        return True

    def list_members(self, archive: Path) -> list[str]:
        return sorted(self.archives.get(archive, {}))

    # misc

    def http_get(self, url: str) -> CommandResult:
        self.calls.append(("http_get", url))
        return self.command_outputs.get(url, CommandResult(exit_code=0, stdout="It works!"))

    def run(self, args: Sequence[str]) -> CommandResult:
        key = " ".join(args)
        self.calls.append(("run", key))
        return self.command_outputs.get(key, CommandResult(exit_code=0, stdout=""))

    def read_files(self, pattern: str) -> str:
        return self.command_outputs.get(pattern, CommandResult(exit_code=0)).stdout

    def transfer(self, files: Sequence[Path], destination: str) -> bool:
        self.calls.append(("transfer", tuple(files), destination))
        return self.transfer_ok
