"""
Known error signatures.

Some import failures are expected and harmless. The classic case is a MySQL
dump taken with --all-databases: replaying it on a fresh server fails on the
mysql system schema, after the user databases were already created.

All free text matching against collaborator error output lives in this table.
Callers never grep error text inline.
"""

from __future__ import annotations

from dataclasses import dataclass

from distro_migration.core.errors import ClassifiedConflict, UnclassifiedFailure
from distro_migration.core.types import CommandResult, DatabaseEngine, ImportOutcome


@dataclass(frozen=True)
class ErrorSignature:
    """
    One recognized error pattern.

    marker
    Literal substring searched in the captured error stream.

    outcome
    ImportOutcome assigned when the marker is found.
    """

    name: str
    engine: DatabaseEngine
    marker: str
    outcome: ImportOutcome
    description: str = ""


KNOWN_SIGNATURES: tuple[ErrorSignature, ...] = (
    ErrorSignature(
        name="mysql_system_user_table_exists",
        engine=DatabaseEngine.mysql,
        marker="Table 'user' already exists",
        outcome=ImportOutcome.failed_system_conflict,
        description="system tables already exist on the target, user databases are imported",
    ),
)


def find_signature(
    engine: DatabaseEngine,
    text: str,
    signatures: tuple[ErrorSignature, ...] = KNOWN_SIGNATURES,
) -> ErrorSignature | None:
    """Return the first signature for engine whose marker occurs in text."""
    for sig in signatures:
        if sig.engine == engine and sig.marker in text:
            return sig
    return None


def classify_import_error(
    engine: DatabaseEngine,
    text: str,
    signatures: tuple[ErrorSignature, ...] = KNOWN_SIGNATURES,
) -> ImportOutcome:
    """Map captured error text to an ImportOutcome. Unknown text is failed_other."""
    sig = find_signature(engine, text, signatures)
    if sig is None:
        return ImportOutcome.failed_other
    return sig.outcome


def check_import_result(
    engine: DatabaseEngine,
    result: CommandResult,
    signatures: tuple[ErrorSignature, ...] = KNOWN_SIGNATURES,
) -> None:
    """
    Raise for a failed import.

    ClassifiedConflict carrying the signature outcome when the error text
    matches a known signature.
    UnclassifiedFailure for anything else.
    A successful result returns None.
    """
    if result.ok:
        return
    sig = find_signature(engine, result.stderr, signatures)
    if sig is not None:
        raise ClassifiedConflict(sig.name, sig.outcome)
    raise UnclassifiedFailure(f"{engine.value} import exited with status {result.exit_code}")
