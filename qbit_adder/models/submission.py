"""
Data structures describing a torrent submission and its outcome.
"""

from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from qbit_adder.exceptions import QbitAdderError


class SubmissionOptions(BaseModel):
    """User-chosen options for adding a torrent, validated before any I/O."""

    savepath: Optional[str] = None
    rename: Optional[str] = None
    category: Optional[str] = None
    start_paused: bool = False
    peer_limit: Optional[int] = Field(default=None, ge=0)
    file_priorities: Optional[list[int]] = None

    class Config:
        """Pydantic model configuration."""

        str_strip_whitespace = True

    @field_validator("file_priorities")
    @classmethod
    def validate_priorities(cls, v: Optional[list[int]]) -> Optional[list[int]]:
        """Priorities are qBittorrent's 0 (skip), 1 (normal), 6 (high), 7 (maximal)."""
        if v is not None and any(p < 0 for p in v):
            raise ValueError("File priorities cannot be negative.")
        return v


@dataclass(frozen=True)
class SubmissionRequest:
    """Everything the add endpoint needs, assembled from the file and the options."""

    torrent_bytes: bytes = field(repr=False)
    filename: str
    options: SubmissionOptions


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of a pipeline run: success, or exactly one error."""

    success: bool
    error: Optional[QbitAdderError] = None
    info_hash: Optional[str] = None
    transport: Optional[str] = None

    @classmethod
    def ok(cls, info_hash: Optional[str], transport: str) -> "SubmissionResult":
        return cls(success=True, info_hash=info_hash, transport=transport)

    @classmethod
    def failed(
        cls, error: QbitAdderError, info_hash: Optional[str] = None
    ) -> "SubmissionResult":
        return cls(success=False, error=error, info_hash=info_hash)

    @property
    def error_kind(self) -> Optional[str]:
        """The error's class name, e.g. 'DuplicateTorrentError'."""
        return type(self.error).__name__ if self.error else None

    @property
    def message(self) -> str:
        return str(self.error) if self.error else "Ok."
