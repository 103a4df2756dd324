"""
The application facade: one object wiring storage, session and pipeline
together for the CLI or any other caller.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, List, Optional

from qbit_adder.api.auth import SessionManager
from qbit_adder.api.client import TRANSPORT_ERRORS, service_error
from qbit_adder.exceptions import NotConnectedError
from qbit_adder.models.config import ConnectionConfig
from qbit_adder.models.submission import SubmissionOptions, SubmissionResult
from qbit_adder.storage.config_manager import ConfigManager
from qbit_adder.storage.cookie_store import CookieStore
from qbit_adder.storage.state_store import RecentSavePaths, StateStore
from qbit_adder.torrent.infohash import compute_info_hash_from_file
from qbit_adder.torrent.metadata import TorrentMetadata, parse_torrent_file
from qbit_adder.utils.structured_logger import create_structured_logger

from .pipeline import SubmissionPipeline

log = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.ini"


class TorrentAdderService:
    """
    Everything a front end needs: metadata preview, duplicate-aware
    submission, categories, recent save paths and the connection lifecycle.

    Use it as an async context manager so network resources are released:

        async with TorrentAdderService(config_dir) as service:
            result = await service.check_and_submit(path, options)
    """

    def __init__(
        self,
        config_dir: Path,
        cli_options: Optional[dict[str, Any]] = None,
        config: Optional[ConnectionConfig] = None,
    ):
        self.config_dir = Path(config_dir)
        self.config_manager = ConfigManager(self.config_dir / CONFIG_FILE_NAME)
        self.config = config or self.config_manager.load_config(cli_options)

        self.state = StateStore(self.config_dir)
        self.cookies = CookieStore(self.config_dir)
        self.recent_paths = RecentSavePaths(self.state)
        self.session = SessionManager(
            self.config, self.cookies, self.state, self.config_manager
        )

        self._event_log, events = create_structured_logger(
            self.config_dir / "logs", enable_json=self.config.json_log
        )
        self.pipeline = SubmissionPipeline(
            self.session, self.recent_paths, events=events
        )

    async def __aenter__(self) -> "TorrentAdderService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # Torrent inspection

    def parse_metadata(self, path: Path) -> TorrentMetadata:
        return parse_torrent_file(path)

    def info_hash(self, path: Path) -> Optional[str]:
        return compute_info_hash_from_file(path)

    # Submission

    async def check_and_submit(
        self, path: Path, options: Optional[SubmissionOptions] = None
    ) -> SubmissionResult:
        return await self.pipeline.run(Path(path), options)

    def get_recent_save_paths(self) -> List[str]:
        return self.recent_paths.get()

    def get_default_save_path(self) -> str:
        return self.recent_paths.default()

    async def list_categories(self) -> List[str]:
        """
        Sorted category names defined in the WebUI.

        Raises:
            NotConnectedError: The user explicitly disconnected.
            AuthenticationError: Login failed or the WebUI answered 403.
            UnknownServerError: Any other status, or a malformed reply.
            ServiceConnectionError: The WebUI could not be reached.
        """
        if self.session.user_disconnected:
            raise NotConnectedError(
                "Disconnected from the WebUI. Run 'qbit-adder connect' first."
            )
        await self.session.ensure_authenticated()

        client = self.session.client
        live = self.session.live_context()
        if live is not None:
            try:
                return await client.categories(live)
            except TRANSPORT_ERRORS as e:
                log.debug(f"Live context failed listing categories: {e}")

        direct = await self.session.direct_transport()
        try:
            return await client.categories(direct)
        except TRANSPORT_ERRORS as e:
            raise service_error(e, self.session.base_url) from e

    # Connection lifecycle

    async def connect(self, url: str, username: str = "", password: str = "") -> None:
        await self.session.connect(url, username, password)
        self.config = self.session.config

    async def disconnect(self) -> None:
        await self.session.disconnect()

    async def restore(self) -> bool:
        return await self.session.restore()

    async def close(self) -> None:
        await self.session.close()
        await asyncio.to_thread(self._event_log.close)
