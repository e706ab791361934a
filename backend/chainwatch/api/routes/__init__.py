"""
API Routes
"""
from chainwatch.api.routes import control, snapshots

__all__ = ["control", "snapshots"]
