"""Rate limiting using slowapi.

Module-level Limiter shared by the routers and wired into the app in main.py.
Recalculation endpoints are heavier than reads and carry their own limit.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["120/minute"],
)

RECALCULATE_LIMIT = "20/minute"
