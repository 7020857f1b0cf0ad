"""
API Routers package.
"""

from . import jobs, stats, triggers

__all__ = ["jobs", "stats", "triggers"]
