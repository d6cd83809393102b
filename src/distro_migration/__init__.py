"""
distro_migration

This package migrates a host from a RHEL family distribution to Debian.

We keep modules small and well separated:
core contains shared data structures, errors, configuration and logging
inventory contains the source host report, fact probes and package mapping
execution contains host collaborator interfaces and their implementations
reconcile contains package and database reconciliation
restore contains config restoration, target backup, rollback and verification
report contains the restore log and the final summary
collector contains the source host side of the migration
agent contains the operator menu and its actions
"""

__version__ = "0.3.0"
