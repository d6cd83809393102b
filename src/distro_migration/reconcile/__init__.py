"""
Reconcile package.

This makes the reconcile folder an explicit package so both Python and mypy
resolve modules consistently.
"""

from distro_migration.reconcile.databases import DatabaseReconciler
from distro_migration.reconcile.packages import PackageReconciler

__all__ = ["DatabaseReconciler", "PackageReconciler"]
