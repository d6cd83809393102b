"""
Host collaborator interfaces.

Goal
Define narrow interfaces for everything the toolkit asks the operating
system to do, without binding the reconcilers to subprocess calls.

Design notes
Every method reports success through its return value. Collaborators do not
raise on a nonzero exit status; the caller decides whether a failure is fatal,
logged, or ignored. This keeps the partial failure policy in one place.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, Sequence

from distro_migration.core.types import CommandResult, DatabaseEngine, DiskUsage


class PackageManager(Protocol):
    """Install and query Debian packages."""

    def install(self, name: str) -> bool:
        """Install one package. True on success."""

    def is_installed(self, name: str) -> bool:
        """True when the package is already installed."""


class ServiceManager(Protocol):
    """
    Service lifecycle.

    unit_exists answers whether a unit file is known to the service manager,
    independent of its enabled or active state.
    """

    def enable_start(self, name: str) -> bool:
        """Enable the unit and start it now."""

    def start(self, name: str) -> bool:
        """Start the unit."""

    def stop(self, name: str) -> bool:
        """Stop the unit."""

    def is_active(self, name: str) -> bool:
        """True when the unit is active."""

    def unit_exists(self, name: str) -> bool:
        """True when a unit file with this name exists."""


class HostFilesystem(Protocol):
    """Filesystem queries and bulk operations on the target host."""

    def socket_exists(self, path: Path) -> bool:
        """True when path exists and is a unix socket."""

    def path_exists(self, path: Path) -> bool:
        """True when path exists as a file or directory."""

    def list_dir(self, path: Path) -> list[str]:
        """Child names of a directory, or an empty list when it is missing."""

    def remove_tree(self, path: Path) -> None:
        """Delete a directory tree. Missing paths are ignored."""

    def copy_tree(self, src: Path, dst: Path) -> bool:
        """Copy the contents of src into dst, merging with what is there."""

    def chown_tree(self, path: Path, owner: str) -> bool:
        """Recursively change ownership to an owner:group string."""

    def disk_usage(self, path: Path) -> DiskUsage:
        """Disk usage for the filesystem holding path."""


class ClusterManager(Protocol):
    """
    PostgreSQL cluster management in the Debian postgresql-common style.

    drop_cluster is best effort and its result is ignored by callers.
    """

    def drop_cluster(self, version: str) -> bool:
        """Stop and drop the cluster for a version."""

    def delete_cluster_directory(self, version: str) -> None:
        """Remove the on disk data directory for a version."""

    def create_cluster(self, version: str) -> bool:
        """Initialize a fresh cluster for a version."""


class DumpImporter(Protocol):
    """
    Logical dump import and ad hoc queries.

    import_dump always returns the captured error stream so callers can
    classify failures.
    """

    def import_dump(self, engine: DatabaseEngine, dump_path: Path) -> CommandResult:
        """Feed a logical dump to the engine client."""

    def run_query(self, engine: DatabaseEngine, query: str | None = None) -> CommandResult:
        """Run a read only query, or list databases when query is None."""


class ArchiveTool(Protocol):
    """Compressed tar archives."""

    def create_archive(
        self,
        dest: Path,
        sources: Sequence[str],
        excludes: Sequence[str] = (),
    ) -> bool:
        """Create a gzip tar archive preserving permissions."""

    def extract_archive(self, archive: Path, dest: Path) -> bool:
        """Extract an archive into dest, preserving permissions."""

    def list_members(self, archive: Path) -> list[str]:
        """Member names of an archive."""


class Host(
    PackageManager,
    ServiceManager,
    HostFilesystem,
    ClusterManager,
    DumpImporter,
    ArchiveTool,
    Protocol,
):
    """
    Everything the target host side needs, in one object.

    Reconcilers only depend on the narrow interfaces above. Composition code
    passes one Host wherever a narrow interface is expected.
    """

    def http_get(self, url: str) -> CommandResult:
        """Fetch a URL from the host itself."""


class SourceHost(ArchiveTool, Protocol):
    """
    Source host side collaborators used by the collector.

    run captures the output of an inventory command.
    read_files concatenates every file matching a glob pattern.
    """

    def run(self, args: Sequence[str]) -> CommandResult:
        """Run a command and capture its output."""

    def read_files(self, pattern: str) -> str:
        """Concatenated contents of all files matching pattern."""

    def dump_database(self, engine: DatabaseEngine, dest: Path) -> bool:
        """Write a logical dump of every database of an engine to dest."""

    def transfer(self, files: Sequence[Path], destination: str) -> bool:
        """Copy files to a remote user@host:dir destination."""
