"""Rate limiting utilities."""
import threading
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import List

# Simple in-memory rate limiter, per process
rate_limit_store: dict[str, List[datetime]] = defaultdict(list)
_lock = threading.Lock()

RATE_LIMIT_WINDOW = 60  # seconds
RATE_LIMIT_MAX = {
    "search": 30,      # 30 searches per minute
    "session": 20,     # 20 new sessions per minute
    "clickout": 60,    # 60 clicks per minute
}


def check_rate_limit(key: str, limit_type: str) -> bool:
    """Returns True if request is allowed, False if rate limited."""
    now = datetime.now(timezone.utc)
    window_start = now - timedelta(seconds=RATE_LIMIT_WINDOW)

    with _lock:
        rate_limit_store[key] = [
            t for t in rate_limit_store[key] if t > window_start
        ]

        max_requests = RATE_LIMIT_MAX.get(limit_type, 100)
        if len(rate_limit_store[key]) >= max_requests:
            return False

        rate_limit_store[key].append(now)
        return True


def reset_rate_limits() -> None:
    with _lock:
        rate_limit_store.clear()
