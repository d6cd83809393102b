"""
Error taxonomy.

We separate error types so callers can react correctly.
Example:
SetupError should abort the current action before anything is changed.
CollaboratorFailure is logged at the call site and the action moves on.
ClassifiedConflict is a known benign pattern and counts as partial success.
UnclassifiedFailure needs an operator to look at it.
"""

from __future__ import annotations

from distro_migration.core.types import ImportOutcome


class MigrationError(Exception):
    """Base class for all migration toolkit exceptions."""


class SetupError(MigrationError):
    """Raised when a required input file or directory is missing."""


class ConfigError(MigrationError):
    """Raised when a configuration file cannot be used."""


class CollaboratorFailure(MigrationError):
    """Raised when an external tool returned a nonzero exit status."""


class ClassifiedConflict(MigrationError):
    """
    Raised when a failure matches a known error signature.

    signature is the matched signature name and outcome the ImportOutcome
    the signature table assigns to it.
    """

    def __init__(self, signature: str, outcome: ImportOutcome) -> None:
        super().__init__(signature)
        self.signature = signature
        self.outcome = outcome


class UnclassifiedFailure(MigrationError):
    """Raised when a failure does not match any known error signature."""
