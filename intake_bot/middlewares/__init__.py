"""Middleware package initialization."""

from .access import AccessMiddleware
from .logging import LoggingMiddleware

__all__ = [
    "AccessMiddleware",
    "LoggingMiddleware",
]
