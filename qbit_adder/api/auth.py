"""
Handles authentication with the qBittorrent WebUI: cookie-based login, the
isolated cookie store, the explicit-disconnect flag and the live context.
"""

import asyncio
import logging
from typing import Optional

from qbit_adder.exceptions import AuthenticationError, ServiceConnectionError
from qbit_adder.models.config import ConnectionConfig
from qbit_adder.storage.config_manager import ConfigManager
from qbit_adder.storage.cookie_store import CookieStore
from qbit_adder.storage.state_store import StateStore

from .client import (
    TRANSPORT_ERRORS,
    DirectTransport,
    LiveContext,
    WebUIClient,
    service_error,
)

log = logging.getLogger(__name__)


class SessionManager:
    """
    Owns the authenticated state of the connection to one WebUI.

    It is the single writer of the isolated cookie store: every read and write
    of the store goes through this class and is serialized by one lock, so a
    duplicate check never observes a half-replaced cookie set while a login is
    in progress.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        cookie_store: CookieStore,
        state_store: StateStore,
        config_manager: Optional[ConfigManager] = None,
    ):
        """
        Initializes the session manager.

        Args:
            config: The validated connection settings.
            cookie_store: The isolated, origin-scoped cookie store.
            state_store: Persistent flags (ever connected, user disconnected).
            config_manager: Used by ``connect`` to persist new settings.
        """
        self.config = config
        self.client = WebUIClient(config)
        self._cookie_store = cookie_store
        self._state = state_store
        self._config_manager = config_manager
        self._lock = asyncio.Lock()
        self._live: Optional[LiveContext] = None

    @property
    def base_url(self) -> str:
        return self.config.url

    @property
    def user_disconnected(self) -> bool:
        return self._state.user_disconnected

    @property
    def ever_connected(self) -> bool:
        return self._state.ever_connected

    # Cookie store access

    async def cookies(self) -> dict[str, str]:
        """The stored session cookies for the configured origin."""
        async with self._lock:
            return await asyncio.to_thread(self._cookie_store.get, self.base_url)

    async def cookie_header(self) -> str:
        cookies = await self.cookies()
        return "; ".join(f"{name}={value}" for name, value in cookies.items())

    async def direct_transport(self) -> DirectTransport:
        """A strategy B transport carrying the current stored cookies."""
        return self.client.direct(await self.cookie_header())

    # Login

    async def login(
        self,
        url: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> None:
        """
        Logs in and replaces the stored cookie set for the origin.

        Success requires HTTP 200 and at least one session cookie: some
        deployments answer 200 to unauthenticated requests too.

        Raises:
            AuthenticationError: Non-200 answer, or 200 without a cookie.
            ServiceTimeoutError: The login did not complete in time.
            ServiceConnectionError: The WebUI could not be reached.
        """
        if url is not None and url != self.config.url:
            await self._switch_url(url)
        username = self.config.username if username is None else username
        password = self.config.password if password is None else password

        log.info(f"Logging in to {self.base_url} as: {username}")
        try:
            reply = await self.client.login(username, password)
        except TRANSPORT_ERRORS as e:
            raise service_error(e, self.base_url) from e

        # TODO: a proxy error page or an API version mismatch also lands here
        # and is reported as bad credentials; tell them apart once the WebUI
        # versions to support are settled.
        if reply.status != 200 or not reply.cookies:
            log.debug(
                f"Login rejected: HTTP {reply.status}, "
                f"{len(reply.cookies)} cookie(s), body {reply.text[:40]!r}"
            )
            raise AuthenticationError("Invalid username or password.")

        async with self._lock:
            await asyncio.to_thread(
                self._cookie_store.replace, self.base_url, reply.cookies
            )
            await self._reopen_live_context(reply.cookies)
        log.info(f"[green]✓ Logged in to {self.base_url}[/green]")

    async def ensure_authenticated(self) -> None:
        """
        (Re-)authenticates when a username is configured.

        Without a username the WebUI is trusted (local deployment with auth
        bypass), so only the live context is made available.
        """
        if self.config.has_credentials:
            await self.login()
            return
        if self._live is None or not self._live.serves(self.base_url):
            async with self._lock:
                cookies = await asyncio.to_thread(self._cookie_store.get, self.base_url)
                await self._reopen_live_context(cookies)

    def live_context(self) -> Optional[LiveContext]:
        """The open live context for the configured origin, if there is one."""
        if self._live is not None and self._live.serves(self.base_url):
            return self._live
        return None

    async def _reopen_live_context(self, cookies: dict[str, str]) -> None:
        if self._live is not None:
            await self._live.close()
        self._live = await LiveContext.open(self.base_url, cookies)

    async def _switch_url(self, url: str) -> None:
        self.config = self.config.model_copy(update={"url": url.rstrip("/")})
        self.client = WebUIClient(self.config)
        if self._live is not None:
            await self._live.close()
            self._live = None

    # Connection lifecycle

    async def connect(
        self, url: str, username: str = "", password: str = ""
    ) -> None:
        """
        Explicitly connects to a WebUI and remembers the settings.

        The disconnect flag is only cleared once the connection succeeds, so a
        failed attempt does not re-enable auto-reconnect.
        """
        settings = {"url": url, "username": username.strip(), "password": password}
        if self._config_manager is not None:
            self._config_manager.save_config(settings)
            self.config = self._config_manager.load_config()
        else:
            self.config = ConnectionConfig(**{**self.config.model_dump(), **settings})
        self.client = WebUIClient(self.config)
        self._state.ever_connected = True

        await self.ensure_authenticated()
        self._state.user_disconnected = False
        log.info(f"Connected to {self.base_url}.")

    async def restore(self) -> bool:
        """
        Re-establishes the previous connection at startup.

        Only runs when a connection was made before and the user did not
        explicitly disconnect since. Failures are logged, never raised.
        """
        if not self.ever_connected or self.user_disconnected:
            log.debug("No connection to restore.")
            return False
        try:
            await self.ensure_authenticated()
        except (AuthenticationError, ServiceConnectionError) as e:
            log.warning(f"[yellow]Could not restore the connection: {e}[/yellow]")
            return False
        return True

    async def disconnect(self) -> None:
        """Marks the user as disconnected, purges the cookies, closes the live context."""
        self._state.user_disconnected = True
        async with self._lock:
            await asyncio.to_thread(self._cookie_store.clear)
            if self._live is not None:
                await self._live.close()
                self._live = None
        log.info("Disconnected; session cookies removed.")

    async def close(self) -> None:
        """Releases network resources without touching persistent state."""
        if self._live is not None:
            await self._live.close()
            self._live = None

