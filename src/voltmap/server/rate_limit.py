"""In-memory, per-instance sliding window rate limiting keyed by actor."""

from __future__ import annotations

import threading
import time

# Rate limiting state: "bucket:actor" -> request timestamps
_rate_limits: dict[str, list[float]] = {}
_lock = threading.Lock()

# Idle keys are dropped at most this often
SWEEP_INTERVAL_SECONDS = 60
_last_sweep = 0.0
_longest_window = 0


def _sweep(now: float) -> None:
    """Forget actors with no request inside the longest window seen. Caller holds _lock."""
    global _last_sweep
    cutoff = now - _longest_window
    for key in [k for k, stamps in _rate_limits.items() if not stamps or stamps[-1] <= cutoff]:
        del _rate_limits[key]
    _last_sweep = now


def check_rate_limit(bucket: str, actor_id: str, limit: int, window_seconds: int) -> bool:
    """Check if an actor is within a bucket's rate limit.

    Args:
        bucket: Limit family (e.g. "vote", "report")
        actor_id: Actor identifier
        limit: Requests allowed per window
        window_seconds: Window length

    Returns:
        True if request is allowed, False if rate limited
    """
    global _longest_window
    key = f"{bucket}:{actor_id}"
    now = time.time()
    window_start = now - window_seconds

    with _lock:
        _longest_window = max(_longest_window, window_seconds)
        if now - _last_sweep >= SWEEP_INTERVAL_SECONDS:
            _sweep(now)

        # Clean old entries
        recent = [t for t in _rate_limits.get(key, ()) if t > window_start]

        if len(recent) >= limit:
            _rate_limits[key] = recent
            return False

        recent.append(now)
        _rate_limits[key] = recent
        return True


def reset_rate_limits() -> None:
    """Forget all recorded requests. Useful for testing."""
    global _last_sweep, _longest_window
    with _lock:
        _rate_limits.clear()
        _last_sweep = 0.0
        _longest_window = 0
