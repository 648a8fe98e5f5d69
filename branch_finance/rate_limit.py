"""Shared rate limiter for the login endpoint."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from branch_finance.config import get_settings

settings = get_settings()

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

# e.g. "10 per 15 minutes"
LOGIN_RATE_LIMIT = (
    f"{settings.MAX_LOGIN_ATTEMPTS * 2} per "
    f"{settings.LOGIN_RATE_WINDOW_MINUTES} minutes"
)
