"""
Settle wait.

After a service is started, the service manager finishes startup in the
background. Instead of sleeping a fixed time and probing once, we poll the
readiness predicate at a fixed interval for a fixed number of attempts.

The result is deterministic: True as soon as the predicate holds, False after
the last attempt. There is no cancellation and no escalation.
"""

from __future__ import annotations

import time
from typing import Callable

from distro_migration.core.config import SettleConfig


def wait_until(
    predicate: Callable[[], bool],
    config: SettleConfig,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """
    Poll predicate until it holds or attempts run out.

    The first check happens after one interval, because the caller has just
    started the service. No sleep follows the final failed check.
    """
    attempts = max(1, config.max_attempts)
    for _ in range(attempts):
        sleep(config.interval_seconds)
        if predicate():
            return True
    return False
