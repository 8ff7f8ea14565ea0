"""
Media Transfer Layer.

This package is responsible for moving fragment bytes over the network.
"""

from .fetcher import RetryingFetcher

__all__ = ["RetryingFetcher"]
