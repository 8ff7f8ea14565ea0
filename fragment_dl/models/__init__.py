"""
Data Models Layer.

This package contains the dataclasses and Pydantic models that define the core
data structures used throughout the application, such as configuration,
fragments and statistics.
"""

from .config import FetchConfig, RetryPolicy
from .fragments import FragmentList, FragmentResult, FragmentTask
from .stats import SessionStats

__all__ = [
    "FetchConfig",
    "FragmentList",
    "FragmentResult",
    "FragmentTask",
    "RetryPolicy",
    "SessionStats",
]
