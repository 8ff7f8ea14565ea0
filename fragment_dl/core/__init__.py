"""
Core download engine.

This package contains the concurrency and ordering logic. The `DownloadSession`
acts as the session coordinator, driving the `ConcurrencyLimiter` for fetches and
the `OrderedAssembler` for in-order writes.
"""

from .assembler import OrderedAssembler
from .limiter import ConcurrencyLimiter
from .session import DownloadSession, FragmentListProvider, SessionState

__all__ = [
    "ConcurrencyLimiter",
    "DownloadSession",
    "FragmentListProvider",
    "OrderedAssembler",
    "SessionState",
]
