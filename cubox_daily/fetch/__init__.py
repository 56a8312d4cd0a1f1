"""
Cubox API access.

This package contains the async REST client that lists cards, reads card
content and downloads images.
"""

from .client import CuboxClient

__all__ = ["CuboxClient"]
