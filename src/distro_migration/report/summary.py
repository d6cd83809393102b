"""
Migration summary.

Pure aggregation of what the run observed and did:
report lines that mention migrated services, the package decisions, and the
terminal state and import outcome of each database engine.

render_summary has no side effects. write_summary writes the text report and
a JSON twin next to it for tooling.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from distro_migration.core.serialization import to_json_safe_dict
from distro_migration.core.types import DatabaseReport, PackageDecision

RECOMMENDED_CHECKS = (
    "Test websites at http://<debian-IP>/",
    "Confirm DB content via psql or mysql commands",
)


@dataclass
class MigrationSummary:
    """
    Everything the final report shows.

    packages and databases are empty when the matching action has not run in
    this session.
    """

    generated_at: datetime
    report_matches: list[str] = field(default_factory=list)
    packages: list[PackageDecision] = field(default_factory=list)
    databases: list[DatabaseReport] = field(default_factory=list)
    recommended_checks: tuple[str, ...] = RECOMMENDED_CHECKS


def render_summary(summary: MigrationSummary) -> str:
    lines = [
        "=== Final Migration Summary ===",
        f"Date: {summary.generated_at.strftime('%Y-%m-%d %H:%M:%S')}",
        "",
        "Services from CentOS report:",
    ]
    lines.extend(summary.report_matches or ["(none)"])

    lines.append("")
    lines.append("Packages:")
    if summary.packages:
        for d in summary.packages:
            lines.append(f"  {d.source_key} -> {d.target_package}: {d.action.value}")
    else:
        lines.append("  (not reconciled in this session)")

    lines.append("")
    lines.append("Databases:")
    if summary.databases:
        for db in summary.databases:
            lines.append(
                f"  {db.engine.value}: state={db.state.value} import={db.outcome.value}"
            )
    else:
        lines.append("  (not reconciled in this session)")

    lines.append("")
    lines.append("Recommended manual checks:")
    lines.extend(f"- {check}" for check in summary.recommended_checks)
    return "\n".join(lines) + "\n"


def summary_to_json(summary: MigrationSummary) -> dict[str, object]:
    payload = to_json_safe_dict(summary)
    payload["generated_at"] = summary.generated_at.isoformat()
    return payload


def write_summary(summary: MigrationSummary, path: Path) -> str:
    """Write the text report and its JSON twin. Returns the rendered text."""
    text = render_summary(summary)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    json_path = path.with_suffix(".json")
    json_path.write_text(json.dumps(summary_to_json(summary), indent=2, sort_keys=True), encoding="utf-8")
    return text
