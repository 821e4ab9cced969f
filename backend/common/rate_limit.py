"""Rate limiting configuration using slowapi.

Provides a module-level Limiter instance imported by routers for
per-endpoint limits (clock-in / clock-out use ``settings.CLOCK_RATE_LIMIT``)
and wired into the FastAPI app in main.py.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from backend.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["120/minute"],
)

clock_rate_limit = settings.CLOCK_RATE_LIMIT
