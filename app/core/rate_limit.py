"""Rate limiting for the login endpoint."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address)


def get_login_rate_limit() -> str:
    """Login attempts allowed per client address, e.g. ``10/minute``."""
    return settings.login_rate_limit
