from __future__ import annotations

from pathlib import Path

import pytest
import structlog

from distro_migration.core.errors import ConfigError
from distro_migration.core.logging import (
    RESTORE_LOG_EVENT,
    bind_migration_context,
    configure_logging,
    drop_restore_log_lines,
)


def test_restore_log_lines_are_dropped():
    with pytest.raises(structlog.DropEvent):
        drop_restore_log_lines(None, "info", {"event": RESTORE_LOG_EVENT, "message": "x"})


def test_other_events_pass_through():
    event = {"event": "databases.pg_recreate_cluster", "version": "15"}

    assert drop_restore_log_lines(None, "warning", event) is event


def test_configure_rejects_unknown_level_and_format():
    with pytest.raises(ConfigError):
        configure_logging("LOUD")
    with pytest.raises(ConfigError):
        configure_logging("INFO", "xml")


def test_migration_context_is_bound(tmp_path: Path):
    structlog.contextvars.clear_contextvars()
    try:
        bind_migration_context("target", tmp_path)

        assert structlog.contextvars.get_contextvars() == {
            "side": "target",
            "work_dir": str(tmp_path),
        }
    finally:
        structlog.contextvars.clear_contextvars()
