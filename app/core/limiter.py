"""Rate limits for the API (SlowAPI) plus a per-access-id guard for the client portal.

One Limiter instance is shared by main (app.state.limiter) and the routers.
Portal passwords are short shared secrets, so besides the per-IP limit each
access id gets its own sliding window of failed attempts.
"""

import time
from collections import defaultdict
from threading import Lock

from fastapi import HTTPException
from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)

LOGIN_LIMIT = "10/minute"
PORTAL_ACCESS_LIMIT = "10/minute"
WRITE_ENDPOINT_LIMIT = "120/minute"
PORTAL_FAILURES_PER_ACCESS_ID = 5
PORTAL_FAILURE_WINDOW_SEC = 300

limit_auth = limiter.limit(LOGIN_LIMIT)
limit_portal_access = limiter.limit(PORTAL_ACCESS_LIMIT)
limit_writes = limiter.limit(WRITE_ENDPOINT_LIMIT)

_portal_failures: defaultdict[str, list[float]] = defaultdict(list)
_portal_failures_lock = Lock()


def _recent_failures(key: str, now: float) -> list[float]:
    cutoff = now - PORTAL_FAILURE_WINDOW_SEC
    recent = [t for t in _portal_failures[key] if t > cutoff]
    _portal_failures[key] = recent
    return recent


def check_portal_failures(access_id: str) -> None:
    """Raise 429 while an access id has too many recent failed portal logins."""
    key = access_id.strip()
    with _portal_failures_lock:
        if len(_recent_failures(key, time.monotonic())) >= PORTAL_FAILURES_PER_ACCESS_ID:
            raise HTTPException(
                status_code=429,
                detail="Too many failed attempts for this access id; try again later",
            )


def record_portal_failure(access_id: str) -> None:
    with _portal_failures_lock:
        _portal_failures[access_id.strip()].append(time.monotonic())


def reset_portal_failures() -> None:
    """Forget all recorded failures (tests and process restarts)."""
    with _portal_failures_lock:
        _portal_failures.clear()
