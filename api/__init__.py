"""API Package.

FastAPI server for lot traceability.
"""

from api.server import create_app, app

__all__ = [
    "create_app",
    "app",
]
