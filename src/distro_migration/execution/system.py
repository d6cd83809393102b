"""
System host.

This implementation backs every collaborator interface with real commands:
apt-get and dpkg-query for packages, systemctl for services, the
postgresql-common cluster tools, psql and mysql for imports, tar for archives,
scp for transfer.

Behavior
Commands never raise on a nonzero exit. A missing executable is reported as
exit status 127 with the OS error text, the same status a shell would give.
Any other OSError while starting a command (permissions, unreadable dump)
is exit status 126. Filesystem helpers turn OSError into False or an empty
value and log it. disk_usage is the exception: it has no failure value, so it
raises CollaboratorFailure.
"""

from __future__ import annotations

import glob
import os
import shutil
import stat
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import structlog

from distro_migration.core.errors import CollaboratorFailure
from distro_migration.core.types import CommandResult, DatabaseEngine, DiskUsage
from distro_migration.execution.base import Host, SourceHost

logger = structlog.get_logger(__name__)

COMMAND_NOT_FOUND = 127
COMMAND_NOT_EXECUTABLE = 126


@dataclass
class SystemHost(Host, SourceHost):
    """
    Real host.

    pg_data_root and pg_cluster_name locate the cluster directory removed by
    delete_cluster_directory.

    postgres_user is the OS account used for psql and pg_dumpall.
    """

    pg_data_root: Path = Path("/var/lib/postgresql")
    pg_cluster_name: str = "main"
    postgres_user: str = "postgres"

    def _run(
        self,
        args: Sequence[str],
        stdin_path: Path | None = None,
        stdout_path: Path | None = None,
    ) -> CommandResult:
        argv = [str(a) for a in args]
        logger.debug("system.run", argv=argv)
        env = dict(os.environ)
        env.setdefault("DEBIAN_FRONTEND", "noninteractive")
        try:
            if stdin_path is not None:
                with stdin_path.open("rb") as stdin:
                    proc = subprocess.run(argv, stdin=stdin, capture_output=True, env=env)
            elif stdout_path is not None:
                with stdout_path.open("wb") as stdout:
                    proc = subprocess.run(argv, stdout=stdout, stderr=subprocess.PIPE, env=env)
            else:
                proc = subprocess.run(argv, capture_output=True, env=env)
        except FileNotFoundError as exc:
            logger.warning("system.command_not_found", argv=argv, error=str(exc))
            return CommandResult(exit_code=COMMAND_NOT_FOUND, stderr=str(exc))
        except OSError as exc:
            logger.warning("system.command_failed_to_start", argv=argv, error=str(exc))
            return CommandResult(exit_code=COMMAND_NOT_EXECUTABLE, stderr=str(exc))

        result = CommandResult(
            exit_code=proc.returncode,
            stdout=_decode(proc.stdout),
            stderr=_decode(proc.stderr),
        )
        if not result.ok:
            logger.info("system.nonzero_exit", argv=argv, exit_code=result.exit_code)
        return result

    def _as_postgres(self, *args: str) -> list[str]:
        return ["sudo", "-u", self.postgres_user, *args]

    # packages

    def install(self, name: str) -> bool:
        return self._run(["apt-get", "install", "-y", name]).ok

    def is_installed(self, name: str) -> bool:
        result = self._run(["dpkg-query", "-W", "-f=${Status}", name])
        return result.ok and "install ok installed" in result.stdout

    # services

    def enable_start(self, name: str) -> bool:
        return self._run(["systemctl", "enable", "--now", name]).ok

    def start(self, name: str) -> bool:
        return self._run(["systemctl", "start", name]).ok

    def stop(self, name: str) -> bool:
        return self._run(["systemctl", "stop", name]).ok

    def is_active(self, name: str) -> bool:
        return self._run(["systemctl", "is-active", "--quiet", name]).ok

    def unit_exists(self, name: str) -> bool:
        result = self._run(["systemctl", "list-unit-files", "--no-legend", f"{name}.service"])
        return result.ok and any(
            line.split()[0] == f"{name}.service" for line in result.stdout.splitlines() if line.split()
        )

    # filesystem

    def socket_exists(self, path: Path) -> bool:
        try:
            return stat.S_ISSOCK(os.stat(path).st_mode)
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.warning("system.stat_failed", path=str(path), error=str(exc))
            return False

    def path_exists(self, path: Path) -> bool:
        try:
            return path.exists()
        except OSError as exc:
            logger.warning("system.stat_failed", path=str(path), error=str(exc))
            return False

    def list_dir(self, path: Path) -> list[str]:
        try:
            if not path.is_dir():
                return []
            return sorted(os.listdir(path))
        except OSError as exc:
            logger.warning("system.list_failed", path=str(path), error=str(exc))
            return []

    def remove_tree(self, path: Path) -> None:
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            elif path.exists() or path.is_symlink():
                path.unlink()
        except OSError as exc:
            logger.warning("system.remove_failed", path=str(path), error=str(exc))

    def copy_tree(self, src: Path, dst: Path) -> bool:
        try:
            dst.mkdir(parents=True, exist_ok=True)
            for child in sorted(src.iterdir()):
                target = dst / child.name
                if child.is_dir() and not child.is_symlink():
                    shutil.copytree(child, target, symlinks=True, dirs_exist_ok=True)
                else:
                    shutil.copy2(child, target, follow_symlinks=False)
        except OSError as exc:
            logger.warning("system.copy_failed", src=str(src), dst=str(dst), error=str(exc))
            return False
        return True

    def chown_tree(self, path: Path, owner: str) -> bool:
        return self._run(["chown", "-R", owner, str(path)]).ok

    def disk_usage(self, path: Path) -> DiskUsage:
        try:
            usage = shutil.disk_usage(path)
        except OSError as exc:
            raise CollaboratorFailure(f"cannot read disk usage of {path}: {exc}") from exc
        return DiskUsage(path=str(path), total=usage.total, used=usage.used, free=usage.free)

    # postgresql clusters

    def drop_cluster(self, version: str) -> bool:
        return self._run(["pg_dropcluster", "--stop", version, self.pg_cluster_name]).ok

    def delete_cluster_directory(self, version: str) -> None:
        self.remove_tree(self.pg_data_root / version / self.pg_cluster_name)

    def create_cluster(self, version: str) -> bool:
        return self._run(["pg_createcluster", version, self.pg_cluster_name]).ok

    # dumps and queries

    def import_dump(self, engine: DatabaseEngine, dump_path: Path) -> CommandResult:
        if engine == DatabaseEngine.postgresql:
            return self._run(self._as_postgres("psql", "-f", str(dump_path)))
        return self._run(["mysql"], stdin_path=dump_path)

    def run_query(self, engine: DatabaseEngine, query: str | None = None) -> CommandResult:
        if engine == DatabaseEngine.postgresql:
            if query is None:
                return self._run(self._as_postgres("psql", "-l"))
            return self._run(self._as_postgres("psql", "-c", query))
        return self._run(["mysql", "-e", query or "SHOW DATABASES;"])

    def dump_database(self, engine: DatabaseEngine, dest: Path) -> bool:
        if not _ensure_dir(dest.parent):
            return False
        if engine == DatabaseEngine.postgresql:
            return self._run(self._as_postgres("pg_dumpall"), stdout_path=dest).ok
        return self._run(["mysqldump", "--all-databases", "-u", "root"], stdout_path=dest).ok

    # archives

    def create_archive(
        self,
        dest: Path,
        sources: Sequence[str],
        excludes: Sequence[str] = (),
    ) -> bool:
        if not _ensure_dir(dest.parent):
            return False
        args = ["tar", *[f"--exclude={e}" for e in excludes], "-czpf", str(dest), *sources]
        return self._run(args).ok

    def extract_archive(self, archive: Path, dest: Path) -> bool:
        if not _ensure_dir(dest):
            return False
        return self._run(["tar", "-xzpf", str(archive), "-C", str(dest)]).ok

    def list_members(self, archive: Path) -> list[str]:
        result = self._run(["tar", "-tzf", str(archive)])
        return result.stdout.splitlines() if result.ok else []

    # misc

    def http_get(self, url: str) -> CommandResult:
        return self._run(["curl", "-s", url])

    def run(self, args: Sequence[str]) -> CommandResult:
        return self._run(args)

    def read_files(self, pattern: str) -> str:
        chunks = []
        for name in sorted(glob.glob(pattern)):
            try:
                chunks.append(Path(name).read_text(encoding="utf-8", errors="replace"))
            except OSError as exc:
                logger.warning("system.read_failed", path=name, error=str(exc))
        return "".join(chunks)

    def transfer(self, files: Sequence[Path], destination: str) -> bool:
        return self._run(["scp", *[str(f) for f in files], destination]).ok


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


def _ensure_dir(path: Path) -> bool:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.warning("system.mkdir_failed", path=str(path), error=str(exc))
        return False
    return True
