"""
Event log for submissions: each event goes to the standard logger as one
line and, when enabled, to a JSON Lines file for later analysis.
"""

import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any, Optional


class StructuredLogger:
    """
    Writes named events with key/value context.

    Usage:
        events = StructuredLogger("qbit_adder.events", log_dir=Path("logs"))
        events.info("submission_completed", transport="live", duration_s=0.18)
        events.close()
    """

    def __init__(
        self,
        name: str,
        log_dir: Optional[Path] = None,
        enable_json: bool = True,
        enable_console: bool = True,
    ):
        self.name = name
        self.enable_console = enable_console
        self._logger = logging.getLogger(name)
        self._run_id = uuid.uuid4().hex[:12]

        self.json_log_path: Optional[Path] = None
        self._json_file: Optional[IO[str]] = None
        if enable_json and log_dir is not None:
            log_dir.mkdir(parents=True, exist_ok=True)
            day = datetime.now().strftime("%Y%m%d")
            self.json_log_path = log_dir / f"events_{day}.jsonl"
            self._json_file = open(self.json_log_path, "a", encoding="utf-8")  # noqa: SIM115

    @property
    def enable_json(self) -> bool:
        return self._json_file is not None and not self._json_file.closed

    def _emit(self, level: int, event: str, **context: Any) -> None:
        if self.enable_console and self._logger.isEnabledFor(level):
            details = " ".join(f"{key}={value}" for key, value in context.items())
            self._logger.log(level, f"[{event}] {details}".rstrip())
        if self.enable_json:
            self._append(level, event, context)

    def _append(self, level: int, event: str, context: dict[str, Any]) -> None:
        record = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "run": self._run_id,
            "level": logging.getLevelName(level),
            "event": event,
        }
        record.update(context)
        try:
            self._json_file.write(json.dumps(record, default=str) + "\n")
            self._json_file.flush()
        except (OSError, ValueError) as e:
            print(f"Event log write failed: {e}", file=sys.stderr)

    def info(self, event: str, **context: Any) -> None:
        self._emit(logging.INFO, event, **context)

    def warning(self, event: str, **context: Any) -> None:
        self._emit(logging.WARNING, event, **context)

    def error(self, event: str, **context: Any) -> None:
        self._emit(logging.ERROR, event, **context)

    def close(self) -> None:
        if self.enable_json:
            self._json_file.close()


class SubmissionLogger:
    """Specialized logger for the stages of a torrent submission."""

    def __init__(self, logger: StructuredLogger):
        self.logger = logger

    def submission_started(self, filename: str, info_hash: Optional[str]):
        self.logger.info(
            "submission_started", filename=filename, info_hash=info_hash
        )

    def duplicate_detected(self, info_hash: str):
        self.logger.info("duplicate_detected", info_hash=info_hash)

    def strategy_fallback(self, from_transport: str, to_transport: str, error: str):
        """Log a switch from the live context to the direct request."""
        self.logger.warning(
            "strategy_fallback",
            from_transport=from_transport,
            to_transport=to_transport,
            error=error,
        )

    def submission_completed(
        self, info_hash: Optional[str], transport: str, duration_s: float
    ):
        self.logger.info(
            "submission_completed",
            info_hash=info_hash,
            transport=transport,
            duration_s=round(duration_s, 3),
        )

    def submission_failed(
        self, info_hash: Optional[str], error_kind: str, error: str, stage: str
    ):
        self.logger.error(
            "submission_failed",
            info_hash=info_hash,
            error_kind=error_kind,
            error=error,
            stage=stage,
        )


def create_structured_logger(
    log_dir: Path | None = None, enable_json: bool = False
) -> tuple[StructuredLogger, SubmissionLogger]:
    """
    Create the structured loggers.

    Returns:
        Tuple of (base_logger, submission_logger)
    """
    base = StructuredLogger(
        "qbit_adder.events",
        log_dir=log_dir,
        enable_json=enable_json,
        enable_console=False,
    )
    return base, SubmissionLogger(base)
