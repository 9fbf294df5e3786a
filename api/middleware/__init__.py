"""
API Middleware Package

Error handling, rate limiting and request logging.
"""

from api.middleware.error_handler import APIError, api_error_from, setup_error_handlers
from api.middleware.logging import LoggingMiddleware
from api.middleware.rate_limit import setup_rate_limiting, limiter

__all__ = [
    "APIError",
    "api_error_from",
    "setup_error_handlers",
    "LoggingMiddleware",
    "setup_rate_limiting",
    "limiter"
]
