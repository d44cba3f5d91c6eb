"""Shared slowapi limiter.

Only ``POST /v1/events/test`` is limited, at ``VIGOR_RATE_LIMIT`` per client
address. SSE streams are long-lived and never counted. ``none`` turns the
limiter off.
"""

from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from vigor.config import settings

RATE_LIMIT_ENABLED = settings.rate_limit.lower() != "none"

TEST_EVENT_LIMIT = settings.rate_limit if RATE_LIMIT_ENABLED else "10/minute"

limiter = Limiter(key_func=get_remote_address, enabled=RATE_LIMIT_ENABLED)
