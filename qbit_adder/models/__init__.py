"""
Data Models Layer.

This package contains the models that define the core data structures used
throughout the application, such as configuration and submissions.
"""

from .config import ConnectionConfig
from .submission import SubmissionOptions, SubmissionRequest, SubmissionResult

__all__ = [
    "ConnectionConfig",
    "SubmissionOptions",
    "SubmissionRequest",
    "SubmissionResult",
]
