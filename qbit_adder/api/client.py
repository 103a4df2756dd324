"""
Async client for the qBittorrent WebUI API (v2).

Two transports reach the WebUI:

- ``LiveContext`` (strategy A): a long-lived session holding the authenticated
  first-party cookie jar, used whenever one is open for the target origin.
- ``DirectTransport`` (strategy B): a one-shot request carrying the isolated
  store's cookies by hand, plus the Referer/Origin headers some deployments
  require for same-origin submission.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol

import aiohttp
from yarl import URL

from qbit_adder import __version__
from qbit_adder.exceptions import (
    AuthenticationError,
    ServiceConnectionError,
    ServiceTimeoutError,
    UnknownServerError,
)
from qbit_adder.models.config import ConnectionConfig
from qbit_adder.models.submission import SubmissionRequest
from qbit_adder.utils.path import api_base, endpoint_url, origin_of

log = logging.getLogger(__name__)

USER_AGENT = f"qbit-adder/{__version__}"

# Anything that means the request never produced an HTTP response.
TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)

FILE_PRIORITY_DELIMITER = "|"


@dataclass(frozen=True)
class HttpReply:
    """Status, text body and Set-Cookie values of a completed HTTP exchange."""

    status: int
    body: str
    cookies: dict[str, str] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return self.body.strip()


@dataclass(frozen=True)
class FormField:
    """One multipart field; ``filename`` marks the torrent file part."""

    name: str
    value: Any
    filename: Optional[str] = None
    content_type: Optional[str] = None


class Transport(Protocol):
    name: str

    async def request(
        self,
        method: str,
        url: str,
        *,
        timeout: float,
        data: Any = None,
        referer: Optional[str] = None,
    ) -> HttpReply: ...


def service_error(error: Exception, base_url: str) -> ServiceConnectionError:
    """Translates a transport failure into the application's connection errors."""
    if isinstance(error, asyncio.TimeoutError):
        return ServiceTimeoutError(f"The WebUI at {base_url} did not answer in time.")
    return ServiceConnectionError(f"Cannot reach the WebUI at {base_url}: {error}")


async def _read_reply(response: aiohttp.ClientResponse) -> HttpReply:
    body = await response.text(errors="replace")
    cookies = {name: morsel.value for name, morsel in response.cookies.items()}
    return HttpReply(status=response.status, body=body, cookies=cookies)


class LiveContext:
    """
    An already-authenticated session bound to one WebUI origin (strategy A).

    It keeps its own cookie jar seeded from the isolated store, so requests
    through it reuse first-party session state without attaching headers by hand.
    """

    name = "live"

    def __init__(self, base_url: str, session: aiohttp.ClientSession):
        self.base_url = base_url
        self.origin = origin_of(base_url)
        self._session = session

    @classmethod
    async def open(cls, base_url: str, cookies: dict[str, str]) -> "LiveContext":
        """Creates a live context whose jar holds ``cookies`` for the origin."""
        # unsafe=True: a local WebUI is usually addressed by IP, which the
        # default jar refuses to store cookies for.
        jar = aiohttp.CookieJar(unsafe=True)
        if cookies:
            jar.update_cookies(cookies, response_url=URL(origin_of(base_url)))
        session = aiohttp.ClientSession(
            cookie_jar=jar,
            headers={
                "User-Agent": USER_AGENT,
                "Referer": f"{api_base(base_url)}/",
                "Origin": origin_of(base_url),
            },
        )
        return cls(base_url, session)

    @property
    def is_open(self) -> bool:
        return not self._session.closed

    def serves(self, url: str) -> bool:
        """True when the context is open and bound to the origin of ``url``."""
        return self.is_open and origin_of(url) == self.origin

    def cookies(self) -> dict[str, str]:
        return {cookie.key: cookie.value for cookie in self._session.cookie_jar}

    async def request(
        self,
        method: str,
        url: str,
        *,
        timeout: float,
        data: Any = None,
        referer: Optional[str] = None,
    ) -> HttpReply:
        if not self.serves(url):
            raise aiohttp.ClientConnectionError(
                f"Live context for {self.origin} cannot serve {url}"
            )
        headers = {"Referer": referer} if referer else None
        async with self._session.request(
            method,
            url,
            data=data,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as response:
            return await _read_reply(response)

    async def close(self) -> None:
        """Gracefully closes the underlying aiohttp session."""
        if not self._session.closed:
            await self._session.close()


class DirectTransport:
    """One-shot requests with manually attached cookies (strategy B)."""

    name = "direct"

    def __init__(self, base_url: str, cookie_header: str = ""):
        self.base_url = base_url
        self.origin = origin_of(base_url)
        self.cookie_header = cookie_header

    async def request(
        self,
        method: str,
        url: str,
        *,
        timeout: float,
        data: Any = None,
        referer: Optional[str] = None,
    ) -> HttpReply:
        headers = {
            "User-Agent": USER_AGENT,
            "Referer": referer or self.base_url,
            "Origin": self.origin,
        }
        if self.cookie_header:
            headers["Cookie"] = self.cookie_header

        # The isolated store is the only cookie source, so no jar is kept here.
        async with (
            aiohttp.ClientSession(cookie_jar=aiohttp.DummyCookieJar()) as session,
            session.request(
                method,
                url,
                data=data,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as response,
        ):
            return await _read_reply(response)


def build_add_fields(request: SubmissionRequest) -> List[FormField]:
    """
    Lays out the multipart fields of a 'torrents/add' call.

    Optional text fields are only sent when non-blank. The connection limit is
    only sent for a positive peer limit, and file priorities are joined in the
    torrent's file order.
    """
    options = request.options
    fields = [
        FormField(
            "torrents",
            request.torrent_bytes,
            filename=request.filename,
            content_type="application/x-bittorrent",
        )
    ]
    for name, value in (
        ("savepath", options.savepath),
        ("rename", options.rename),
        ("category", options.category),
    ):
        if value and value.strip():
            fields.append(FormField(name, value.strip()))

    fields.append(FormField("paused", "true" if options.start_paused else "false"))
    fields.append(FormField("root_folder", "false"))

    if options.peer_limit is not None and options.peer_limit > 0:
        fields.append(FormField("connection", "manual"))
        fields.append(FormField("max-connections", str(options.peer_limit)))

    if options.file_priorities:
        fields.append(
            FormField(
                "filePriorities",
                FILE_PRIORITY_DELIMITER.join(str(p) for p in options.file_priorities),
            )
        )
    return fields


def to_form_data(fields: List[FormField]) -> aiohttp.FormData:
    """Builds a fresh FormData; a FormData can only be sent once."""
    form = aiohttp.FormData()
    for item in fields:
        if item.filename is not None:
            form.add_field(
                item.name,
                item.value,
                filename=item.filename,
                content_type=item.content_type,
            )
        else:
            form.add_field(item.name, item.value)
    return form


def parse_categories(reply: HttpReply) -> List[str]:
    """
    Turns a 'torrents/categories' reply into sorted category names.

    Recent WebUI versions answer with an object keyed by category name, older
    ones with a plain array of names.
    """
    if reply.status == 403:
        raise AuthenticationError("Access to categories was denied (HTTP 403).")
    if reply.status != 200:
        raise UnknownServerError(reply.status, reply.body)
    try:
        parsed = json.loads(reply.body)
    except json.JSONDecodeError as e:
        raise UnknownServerError(reply.status, "Invalid JSON in categories reply") from e

    if isinstance(parsed, list):
        return sorted(item for item in parsed if isinstance(item, str))
    if isinstance(parsed, dict):
        return sorted(parsed.keys())
    raise UnknownServerError(reply.status, "Unexpected categories payload")


class WebUIClient:
    """Endpoint-level calls against one configured WebUI."""

    def __init__(self, config: ConnectionConfig):
        self.config = config

    @property
    def base_url(self) -> str:
        return self.config.url

    def endpoint(self, name: str) -> str:
        return endpoint_url(self.base_url, name)

    async def _call(
        self,
        transport: Transport,
        method: str,
        endpoint: str,
        *,
        timeout: float,
        data: Any = None,
        referer: Optional[str] = None,
    ) -> HttpReply:
        url = self.endpoint(endpoint)
        start_time = time.monotonic()
        try:
            reply = await transport.request(
                method, url, timeout=timeout, data=data, referer=referer
            )
        except TRANSPORT_ERRORS as e:
            log.debug(
                f"{method} {endpoint} via {transport.name} failed: "
                f"{type(e).__name__}: {e}"
            )
            raise
        duration_ms = (time.monotonic() - start_time) * 1000
        log.debug(
            f"{method} {endpoint} via {transport.name} -> HTTP {reply.status} "
            f"({duration_ms:.0f} ms)"
        )
        return reply

    def direct(self, cookie_header: str = "") -> DirectTransport:
        return DirectTransport(self.base_url, cookie_header)

    async def login(self, username: str, password: str) -> HttpReply:
        return await self._call(
            self.direct(),
            "POST",
            "auth/login",
            timeout=self.config.login_timeout,
            data={"username": username, "password": password},
        )

    async def torrent_properties(
        self, transport: Transport, info_hash: str
    ) -> HttpReply:
        return await self._call(
            transport,
            "GET",
            f"torrents/properties?hash={info_hash}",
            timeout=self.config.check_timeout,
        )

    async def add_torrent(
        self, transport: Transport, fields: List[FormField]
    ) -> HttpReply:
        return await self._call(
            transport,
            "POST",
            "torrents/add",
            timeout=self.config.add_timeout,
            data=to_form_data(fields),
            referer=f"{api_base(self.base_url)}/upload.html",
        )

    async def categories(self, transport: Transport) -> List[str]:
        reply = await self._call(
            transport,
            "GET",
            "torrents/categories",
            timeout=self.config.login_timeout,
        )
        return parse_categories(reply)
