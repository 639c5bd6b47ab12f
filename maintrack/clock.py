"""Injectable clock for maintrack.

All "now" comparisons in the engine go through a Clock so sweeps and the
status rule can be exercised with fixed instants.
"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current UTC time as a naive datetime (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
