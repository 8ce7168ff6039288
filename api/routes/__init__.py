"""API Routes Package."""

from api.routes import health, lots

__all__ = [
    "health",
    "lots",
]
