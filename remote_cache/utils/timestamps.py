"""
Wall-clock helpers in epoch milliseconds.

Cache expiries are absolute epoch milliseconds so that TTLs configured in
milliseconds can be added without unit conversion.
"""

import time
from datetime import datetime, timezone
from typing import Optional


def now_ms() -> float:
    """Return the current wall-clock time in epoch milliseconds."""
    return time.time() * 1000.0


def ms_to_datetime(value: Optional[float]) -> Optional[datetime]:
    """
    Convert epoch milliseconds to an aware UTC datetime.

    Parameters
    ----------
    value : float or None
        Epoch milliseconds, or None for "no timestamp"

    Returns
    -------
    datetime or None
        UTC datetime, or None when ``value`` is None

    Examples
    --------
    >>> ms_to_datetime(1697385600000)
    datetime.datetime(2023, 10, 15, 16, 0, tzinfo=datetime.timezone.utc)
    """
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
