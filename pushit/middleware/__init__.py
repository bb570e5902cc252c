"""HTTP middleware."""
from pushit.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
