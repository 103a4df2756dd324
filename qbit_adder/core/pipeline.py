"""
The submission pipeline: from a .torrent file on disk to an 'Ok.' from the WebUI.

Each stage is a coroutine returning a ``StageOutcome``; the order of the
stages lives in the pure ``transition`` function, so the control flow can be
tested without any I/O. A stage that fails raises a ``QbitAdderError``, which
ends the run with a failed ``SubmissionResult``.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional

from qbit_adder.api.auth import SessionManager
from qbit_adder.api.client import (
    TRANSPORT_ERRORS,
    FormField,
    HttpReply,
    build_add_fields,
    service_error,
)
from qbit_adder.exceptions import (
    AuthenticationError,
    DuplicateTorrentError,
    NotConnectedError,
    PayloadFormatError,
    QbitAdderError,
    ServerRejectionError,
    TorrentFileNotFoundError,
    UnknownServerError,
)
from qbit_adder.models.submission import (
    SubmissionOptions,
    SubmissionRequest,
    SubmissionResult,
)
from qbit_adder.storage.state_store import RecentSavePaths
from qbit_adder.torrent.infohash import compute_info_hash
from qbit_adder.utils.path import sanitize_rename, upload_filename
from qbit_adder.utils.structured_logger import SubmissionLogger

from .duplicates import DuplicateChecker

log = logging.getLogger(__name__)

SUCCESS_BODY = "Ok."
REJECTED_BODY = "Fails."


class SubmissionState(Enum):
    VALIDATE = "validate"
    CHECK_DUPLICATE = "check_duplicate"
    AUTHENTICATE = "authenticate"
    BUILD_REQUEST = "build_request"
    SUBMIT = "submit"
    DONE = "done"


class StageOutcome(Enum):
    PROCEED = "proceed"
    TERMINATE = "terminate"


_NEXT_STATE = {
    SubmissionState.VALIDATE: SubmissionState.CHECK_DUPLICATE,
    SubmissionState.CHECK_DUPLICATE: SubmissionState.AUTHENTICATE,
    SubmissionState.AUTHENTICATE: SubmissionState.BUILD_REQUEST,
    SubmissionState.BUILD_REQUEST: SubmissionState.SUBMIT,
    SubmissionState.SUBMIT: SubmissionState.DONE,
}


def transition(state: SubmissionState, outcome: StageOutcome) -> SubmissionState:
    """Returns the state that follows ``state`` after a stage ends with ``outcome``."""
    if state is SubmissionState.DONE:
        raise ValueError("A finished submission has no further state.")
    if outcome is StageOutcome.TERMINATE:
        return SubmissionState.DONE
    return _NEXT_STATE[state]


def classify_add_response(reply: HttpReply) -> Optional[QbitAdderError]:
    """
    Maps a completed 'torrents/add' exchange to None (success) or an error.

    The WebUI answers 200 for both outcomes and tells them apart in the body,
    so only a 200 with the exact body 'Ok.' counts as added.
    """
    if reply.status == 200:
        if reply.text == SUCCESS_BODY:
            return None
        if reply.text == REJECTED_BODY:
            return ServerRejectionError(
                "The WebUI refused the torrent. It may be invalid or already added."
            )
        return UnknownServerError(reply.status, reply.body)
    if reply.status == 403:
        return AuthenticationError("The WebUI rejected the session (HTTP 403).")
    if reply.status == 415:
        return PayloadFormatError("The WebUI says the torrent file is not valid.")
    return UnknownServerError(reply.status, reply.body)


@dataclass
class _Run:
    """Mutable state of one pipeline run, handed from stage to stage."""

    path: Path
    options: SubmissionOptions
    torrent_bytes: bytes = field(default=b"", repr=False)
    info_hash: Optional[str] = None
    fields: List[FormField] = field(default_factory=list)
    result: Optional[SubmissionResult] = None


class SubmissionPipeline:
    """Drives one torrent file through validation, duplicate check and upload."""

    def __init__(
        self,
        session: SessionManager,
        recent_paths: RecentSavePaths,
        duplicate_checker: Optional[DuplicateChecker] = None,
        events: Optional[SubmissionLogger] = None,
    ):
        self.session = session
        self.recent_paths = recent_paths
        self.duplicate_checker = duplicate_checker or DuplicateChecker(session)
        self.events = events
        self._handlers: Dict[
            SubmissionState, Callable[[_Run], Awaitable[StageOutcome]]
        ] = {
            SubmissionState.VALIDATE: self._validate,
            SubmissionState.CHECK_DUPLICATE: self._check_duplicate,
            SubmissionState.AUTHENTICATE: self._authenticate,
            SubmissionState.BUILD_REQUEST: self._build_request,
            SubmissionState.SUBMIT: self._submit,
        }

    async def run(
        self, path: Path, options: Optional[SubmissionOptions] = None
    ) -> SubmissionResult:
        """
        Submits the torrent at ``path``. Never raises for an expected failure:
        the outcome, good or bad, is returned as a ``SubmissionResult``.
        """
        run = _Run(path=Path(path), options=options or SubmissionOptions())
        start_time = time.monotonic()
        state = SubmissionState.VALIDATE

        while state is not SubmissionState.DONE:
            try:
                outcome = await self._handlers[state](run)
            except QbitAdderError as e:
                log.debug(f"Submission stopped at {state.value}: {e}")
                if self.events:
                    self.events.submission_failed(
                        run.info_hash, type(e).__name__, str(e), state.value
                    )
                run.result = SubmissionResult.failed(e, run.info_hash)
                outcome = StageOutcome.TERMINATE
            state = transition(state, outcome)

        if run.result is None:
            run.result = SubmissionResult.failed(
                UnknownServerError(0, "Submission ended without a result."),
                run.info_hash,
            )
        elif run.result.success and self.events:
            self.events.submission_completed(
                run.info_hash, run.result.transport, time.monotonic() - start_time
            )
        return run.result

    # Stages

    async def _validate(self, run: _Run) -> StageOutcome:
        try:
            run.torrent_bytes = await asyncio.to_thread(run.path.read_bytes)
        except OSError as e:
            raise TorrentFileNotFoundError(
                f"Cannot read torrent file '{run.path}': {e.strerror or e}"
            ) from e
        if self.session.user_disconnected:
            raise NotConnectedError(
                "Disconnected from the WebUI. Run 'qbit-adder connect' first."
            )
        return StageOutcome.PROCEED

    async def _check_duplicate(self, run: _Run) -> StageOutcome:
        run.info_hash = compute_info_hash(run.torrent_bytes)
        if self.events:
            self.events.submission_started(run.path.name, run.info_hash)
        if run.info_hash is None:
            log.debug("No info-hash available, skipping the duplicate check.")
            return StageOutcome.PROCEED

        if await self.duplicate_checker.exists(run.info_hash):
            if self.events:
                self.events.duplicate_detected(run.info_hash)
            raise DuplicateTorrentError(run.info_hash)
        return StageOutcome.PROCEED

    async def _authenticate(self, run: _Run) -> StageOutcome:
        await self.session.ensure_authenticated()
        return StageOutcome.PROCEED

    async def _build_request(self, run: _Run) -> StageOutcome:
        options = run.options.model_copy(
            update={"rename": sanitize_rename(run.options.rename)}
        )
        request = SubmissionRequest(
            torrent_bytes=run.torrent_bytes,
            filename=upload_filename(run.path),
            options=options,
        )
        run.fields = build_add_fields(request)
        return StageOutcome.PROCEED

    async def _submit(self, run: _Run) -> StageOutcome:
        client = self.session.client
        reply: Optional[HttpReply] = None
        transport_name = ""

        live = self.session.live_context()
        if live is not None:
            try:
                reply = await client.add_torrent(live, run.fields)
                transport_name = live.name
            except TRANSPORT_ERRORS as e:
                log.info(
                    f"[yellow]Live session failed ({type(e).__name__}), "
                    "retrying with a direct request.[/yellow]"
                )
                if self.events:
                    self.events.strategy_fallback("live", "direct", str(e))

        if reply is None:
            direct = await self.session.direct_transport()
            try:
                reply = await client.add_torrent(direct, run.fields)
            except TRANSPORT_ERRORS as e:
                raise service_error(e, self.session.base_url) from e
            transport_name = direct.name

        error = classify_add_response(reply)
        if error is not None:
            raise error

        if run.options.savepath:
            try:
                self.recent_paths.add(run.options.savepath)
            except OSError as e:
                log.warning(f"Could not remember save path {run.options.savepath}: {e}")
        log.info(f"[green]✓ Added {run.path.name}[/green]")
        run.result = SubmissionResult.ok(run.info_hash, transport_name)
        return StageOutcome.PROCEED
