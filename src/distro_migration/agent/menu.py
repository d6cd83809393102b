"""
Menu controller.

Purpose
The interactive surface on the target host: a numbered menu of eleven
actions, each independently runnable any number of times in any order.

This is the composition layer of the system. It maps a choice to one handler
in MigrationActions and makes sure no failure unwinds past the action that
raised it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import structlog

from distro_migration.agent.actions import MigrationActions
from distro_migration.core.errors import MigrationError
from distro_migration.core.types import ActionResult
from distro_migration.report.restore_log import RestoreLog

logger = structlog.get_logger(__name__)

MENU_TITLE = "=== Advanced CentOS-to-Debian Migration Toolkit ==="
INVALID_CHOICE = "Invalid choice, please try again."
EXIT_ACTION = "exit"


@dataclass(frozen=True)
class MenuEntry:
    """One menu line: number shown to the operator, action name, label."""

    number: int
    action: str
    label: str


MENU: tuple[MenuEntry, ...] = (
    MenuEntry(1, "analyze", "Analyze migration data and report"),
    MenuEntry(2, "check-space", "Check available disk space"),
    MenuEntry(3, "backup-self", "Backup current Debian system"),
    MenuEntry(4, "install-packages", "Automatic smart package installation"),
    MenuEntry(5, "restore-and-import", "Adapt and safely restore configurations (incl. DB auto-fix & import)"),
    MenuEntry(6, "fix-permissions", "Automatic fix for permission issues"),
    MenuEntry(7, "enable-services", "Enable and restart migrated services"),
    MenuEntry(8, "verify", "Verify restored data"),
    MenuEntry(9, "summarize", "Generate detailed migration summary report"),
    MenuEntry(10, "rollback", "Rollback changes (Restore Debian from backup)"),
    MenuEntry(11, EXIT_ACTION, "Exit"),
)

ACTION_NAMES = tuple(e.action for e in MENU)


def render_menu() -> str:
    lines = [MENU_TITLE]
    lines.extend(f"{e.number}. {e.label}" for e in MENU)
    return "\n".join(lines)


def resolve_choice(choice: str) -> MenuEntry | None:
    """Accept a menu number or an action name."""
    choice = choice.strip()
    for entry in MENU:
        if choice == str(entry.number) or choice == entry.action:
            return entry
    return None


class MenuController:
    """
    Dispatch loop over MigrationActions.

    This is not the actions themselves.
    This is the operator loop.
    """

    def __init__(self, actions: MigrationActions, restore_log: RestoreLog) -> None:
        self._actions = actions
        self._log = restore_log
        self._handlers: dict[str, Callable[[], ActionResult]] = {
            "analyze": actions.analyze,
            "check-space": actions.check_space,
            "backup-self": actions.backup_self,
            "install-packages": actions.install_packages,
            "restore-and-import": actions.restore_and_import,
            "fix-permissions": actions.fix_permissions,
            "enable-services": actions.enable_services,
            "verify": actions.verify,
            "summarize": actions.summarize,
            "rollback": actions.rollback,
        }

    def dispatch(self, action: str) -> ActionResult:
        """
        Run one action by name.

        MigrationError and OSError from the handler are logged and turned into
        a failed ActionResult. Other exceptions are programming errors and
        propagate.
        """
        if action == EXIT_ACTION:
            self._log.log("Exiting Migration Toolkit.")
            return ActionResult(action=EXIT_ACTION, ok=True)

        handler = self._handlers.get(action)
        if handler is None:
            raise KeyError(action)

        logger.info("menu.dispatch", action=action)
        try:
            return handler()
        except (MigrationError, OSError) as exc:
            logger.error("menu.action_failed", action=action, error=str(exc), kind=type(exc).__name__)
            self._record_failure(action, exc)
            return ActionResult(action=action, ok=False, messages=[str(exc)])

    def _record_failure(self, action: str, exc: Exception) -> None:
        try:
            self._log.log(f"ERROR in {action}: {exc}")
        except OSError as log_exc:
            logger.error("menu.restore_log_unwritable", path=str(self._log.path), error=str(log_exc))

    def run(
        self,
        prompt: Callable[[], str],
        echo: Callable[[str], None],
    ) -> list[ActionResult]:
        """
        Interactive loop.

        prompt returns the operator's raw choice.
        echo shows menu text and action output.
        Returns the results of every dispatched action, ending with exit.
        """
        results: list[ActionResult] = []
        while True:
            echo(render_menu())
            entry = resolve_choice(prompt())
            if entry is None:
                echo(INVALID_CHOICE)
                continue

            result = self.dispatch(entry.action)
            results.append(result)
            if entry.action == EXIT_ACTION:
                return results
            for message in result.messages:
                echo(message)
