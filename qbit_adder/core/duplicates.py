"""
Asks the WebUI whether a torrent with a given info-hash is already known.
"""

import logging
from typing import Optional

from qbit_adder.api.auth import SessionManager
from qbit_adder.api.client import TRANSPORT_ERRORS, HttpReply
from qbit_adder.exceptions import QbitAdderError

log = logging.getLogger(__name__)


class DuplicateChecker:
    """
    Fail-open existence check: only a positive answer from the WebUI counts.

    A missing hash, an unset URL, an explicit disconnect or any failure on the
    way all read as "not a duplicate" so that a flaky WebUI never blocks a
    submission that would otherwise succeed.
    """

    def __init__(self, session: SessionManager):
        self.session = session

    async def exists(self, info_hash: Optional[str]) -> bool:
        if not info_hash:
            return False
        if not self.session.base_url or self.session.user_disconnected:
            return False

        try:
            await self.session.ensure_authenticated()
        except QbitAdderError as e:
            log.debug(f"Skipping duplicate check, authentication failed: {e}")
            return False

        reply = await self._via_live_context(info_hash)
        if reply is None:
            reply = await self._via_direct_request(info_hash)
        if reply is None:
            return False

        exists = reply.status == 200
        log.debug(f"Duplicate check for {info_hash}: HTTP {reply.status}")
        return exists

    async def _via_live_context(self, info_hash: str) -> Optional[HttpReply]:
        live = self.session.live_context()
        if live is None:
            return None
        try:
            return await self.session.client.torrent_properties(live, info_hash)
        except TRANSPORT_ERRORS:
            log.debug("Live context unavailable for duplicate check, going direct.")
            return None

    async def _via_direct_request(self, info_hash: str) -> Optional[HttpReply]:
        transport = await self.session.direct_transport()
        try:
            return await self.session.client.torrent_properties(transport, info_hash)
        except TRANSPORT_ERRORS as e:
            log.debug(f"Duplicate check failed, assuming not present: {e}")
            return None
