"""Utility functions package."""

from .dates import utcnow

__all__ = [
    'utcnow',
]
