"""Core module - shared models, configuration and observability.

Lot resolution lives in /lot_resolver/, timeline assembly in /lot_timeline/,
the HTTP surface in /api/.
"""

__version__ = "1.0.0"
