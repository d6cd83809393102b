"""
Inventory report.

The source host collector writes one plain text file that concatenates the
installed package list, running services, disabled unit files and a network
configuration dump. On the target host we load it once and never write it.

We keep the raw lines. Probes are substring tests, so there is nothing to
gain from parsing the mixed sections into records.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from distro_migration.core.errors import SetupError


@dataclass(frozen=True)
class InventoryReport:
    """
    Immutable captured facts about the source host.

    lines keeps the original order of the report file.
    """

    lines: tuple[str, ...]
    source: Path | None = None

    @classmethod
    def from_text(cls, text: str, source: Path | None = None) -> InventoryReport:
        return cls(lines=tuple(text.splitlines()), source=source)

    def __iter__(self) -> Iterator[str]:
        return iter(self.lines)

    def __len__(self) -> int:
        return len(self.lines)


def load_report(path: Path) -> InventoryReport:
    """
    Load the inventory report from disk.

    A missing report is a setup problem. We raise instead of returning an empty
    report, because an empty report would silently skip every migration step.
    """
    if not path.is_file():
        raise SetupError(f"inventory report not found: {path}")
    text = path.read_text(encoding="utf-8", errors="replace")
    return InventoryReport.from_text(text, source=path)
