"""Retry backoff for failed prediction attempts."""

from __future__ import annotations

import math
import random
from typing import Optional

JITTER_PCT = 0.2
# 2^30 steps of the base delay is already decades; larger exponents only overflow.
MAX_EXPONENT = 30


def backoff_midpoint(attempt: int, base_seconds: float, max_seconds: Optional[float] = None) -> int:
    """Unjittered delay in ms: base * 2^(attempt-1) seconds, optionally capped."""
    if attempt < 1:
        raise ValueError("attempt must be >= 1")
    if base_seconds < 0:
        raise ValueError("base_seconds must be >= 0")
    seconds = base_seconds * (2 ** min(attempt - 1, MAX_EXPONENT))
    if max_seconds is not None and max_seconds > 0:
        seconds = min(seconds, max_seconds)
    return int(seconds * 1000)


def jitter(ms: int, rng: random.Random = None) -> int:
    """Spread ms uniformly over [ms - 20%, ms + 20%] (integer ms)."""
    rng = rng or random
    delta = math.floor(ms * JITTER_PCT)
    return ms - delta + rng.randint(0, delta * 2)


def backoff_delay(
    attempt: int,
    base_seconds: float,
    rng: random.Random = None,
    max_seconds: Optional[float] = None,
) -> int:
    """
    Delay in milliseconds before a failed job becomes eligible again.

    ``attempt`` is the attempt count after incrementing, so attempt 1 waits
    about ``base_seconds``, attempt 2 about twice that, and so on. The cap
    applies before jitter.
    """
    return jitter(backoff_midpoint(attempt, base_seconds, max_seconds), rng)
