"""
Rate Limiting Middleware

Per-client limits on the routes that reach the mailbox or the LLM provider.
"""

from fastapi import FastAPI
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware


# Common limits
LIMIT_STANDARD = "100/minute"
LIMIT_ANALYSIS = "10/minute"  # Expensive LLM operations
LIMIT_SYNC = "6/minute"  # Mailbox round trips

# Create limiter instance; LIMIT_STANDARD applies to routes without their own limit
limiter = Limiter(key_func=get_remote_address, default_limits=[LIMIT_STANDARD])


def setup_rate_limiting(app: FastAPI, enabled: bool = True):
    """
    Set up rate limiting for the application.

    Default limits (can be overridden per-route):
    - 100 requests per minute for general endpoints
    - 10 requests per minute for LLM-backed operations
    - 6 requests per minute for mailbox sync

    Args:
        app: FastAPI application instance
        enabled: Turn enforcement off (tests, trusted deployments)
    """
    limiter.enabled = enabled
    app.state.limiter = limiter

    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

