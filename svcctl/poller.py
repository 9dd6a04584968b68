from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

from .models import DesiredConfig, ServiceSnapshot


@dataclass(frozen=True)
class PollResult:
    converged: bool
    attempts: int
    last: ServiceSnapshot | None = None


def attempts_for(desired: DesiredConfig) -> int:
    """Poll budget: the service's own shutdown grace period plus one attempt."""
    return desired.shutdown_timeout_secs + 1


def wait_until(
    condition: Callable[[ServiceSnapshot], bool],
    probe: Callable[[], ServiceSnapshot],
    max_attempts: int,
    delay_s: float,
    sleep: Callable[[float], None] = time.sleep,
) -> PollResult:
    """Re-probe until `condition` holds or the attempt budget runs out.

    Blocks the calling thread; sleeps `delay_s` between attempts but not
    after the last one.
    """
    max_attempts = max(1, int(max_attempts))
    snap: ServiceSnapshot | None = None
    for attempt in range(1, max_attempts + 1):
        snap = probe()
        if condition(snap):
            return PollResult(converged=True, attempts=attempt, last=snap)
        if attempt < max_attempts:
            sleep(delay_s)
    return PollResult(converged=False, attempts=max_attempts, last=snap)
