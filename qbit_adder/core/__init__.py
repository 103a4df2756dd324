"""
Core application engine for submitting torrents to the WebUI.

The `TorrentAdderService` is the facade used by the CLI. It delegates each
submission to the `SubmissionPipeline`, which consults the `DuplicateChecker`
before uploading.
"""

from .duplicates import DuplicateChecker
from .pipeline import SubmissionPipeline, classify_add_response, transition
from .service import TorrentAdderService

__all__ = [
    "DuplicateChecker",
    "SubmissionPipeline",
    "TorrentAdderService",
    "classify_add_response",
    "transition",
]
