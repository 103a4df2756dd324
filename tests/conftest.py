import json
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from qbit_adder.models.config import ConnectionConfig
from qbit_adder.torrent.bencode import encode

USERNAME = "admin"
PASSWORD = "adminadmin"


def make_torrent(
    name: str = "ubuntu.iso",
    length: int = 5,
    files: list[tuple[list[str], int]] | None = None,
    **extra: Any,
) -> bytes:
    """Builds a minimal .torrent file; ``files`` makes it multi-file."""
    info: dict[str, Any] = {"name": name, "piece length": 16384, "pieces": b"\x00" * 20}
    if files is None:
        info["length"] = length
    else:
        info["files"] = [{"path": path, "length": size} for path, size in files]
    return encode({"announce": "http://tracker.example/announce", "info": info, **extra})


@pytest.fixture
def torrent_file(tmp_path: Path) -> Path:
    path = tmp_path / "ubuntu.torrent"
    path.write_bytes(make_torrent())
    return path


class FakeWebUI:
    """An in-process stand-in for the qBittorrent WebUI API."""

    def __init__(self):
        self.sid = "s3ss10n"
        self.require_auth = True
        self.known_hashes: set[str] = set()
        self.categories: Any = {"movies": {"savePath": "/m"}, "linux": {}}
        self.add_status = 200
        self.add_body = "Ok."
        self.add_requests: list[dict[str, Any]] = []
        self.add_headers: list[dict[str, str]] = []
        self.login_attempts = 0

    def _authorized(self, request: web.Request) -> bool:
        return not self.require_auth or request.cookies.get("SID") == self.sid

    async def login(self, request: web.Request) -> web.Response:
        self.login_attempts += 1
        form = await request.post()
        if form.get("username") == USERNAME and form.get("password") == PASSWORD:
            response = web.Response(text="Ok.")
            response.set_cookie("SID", self.sid)
            return response
        return web.Response(text="Fails.")

    async def properties(self, request: web.Request) -> web.Response:
        if not self._authorized(request):
            return web.Response(status=403, text="Forbidden")
        if request.query.get("hash") in self.known_hashes:
            return web.json_response({"save_path": "/downloads"})
        return web.Response(status=404, text="Torrent hash was not found")

    async def add(self, request: web.Request) -> web.Response:
        if not self._authorized(request):
            return web.Response(status=403, text="Forbidden")
        form = await request.post()
        fields: dict[str, Any] = {}
        for key, value in form.items():
            if isinstance(value, web.FileField):
                fields[key] = {
                    "filename": value.filename,
                    "content_type": value.content_type,
                    "data": value.file.read(),
                }
            else:
                fields[key] = value
        self.add_requests.append(fields)
        self.add_headers.append(
            {k: request.headers.get(k, "") for k in ("Referer", "Origin")}
        )
        return web.Response(status=self.add_status, text=self.add_body)

    async def list_categories(self, request: web.Request) -> web.Response:
        if not self._authorized(request):
            return web.Response(status=403, text="Forbidden")
        return web.Response(text=json.dumps(self.categories))

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/api/v2/auth/login", self.login)
        app.router.add_get("/api/v2/torrents/properties", self.properties)
        app.router.add_post("/api/v2/torrents/add", self.add)
        app.router.add_get("/api/v2/torrents/categories", self.list_categories)
        return app


@pytest.fixture
def webui() -> FakeWebUI:
    return FakeWebUI()


@pytest_asyncio.fixture
async def webui_url(webui: FakeWebUI):
    server = TestServer(webui.make_app())
    await server.start_server()
    try:
        yield str(server.make_url("/")).rstrip("/")
    finally:
        await server.close()


@pytest.fixture
def connection_config(webui_url: str, tmp_path: Path) -> ConnectionConfig:
    return ConnectionConfig(
        url=webui_url,
        username=USERNAME,
        password=PASSWORD,
        config_path=str(tmp_path),
    )
