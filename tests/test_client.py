import asyncio

import aiohttp
import pytest

from qbit_adder.api.client import (
    HttpReply,
    build_add_fields,
    parse_categories,
    service_error,
    to_form_data,
)
from qbit_adder.exceptions import (
    AuthenticationError,
    ServiceConnectionError,
    ServiceTimeoutError,
    UnknownServerError,
)
from qbit_adder.models.submission import SubmissionOptions, SubmissionRequest
from qbit_adder.utils.path import api_base, endpoint_url, origin_of, sanitize_rename


def _fields(**options):
    request = SubmissionRequest(
        torrent_bytes=b"d4:infodee",
        filename="x.torrent",
        options=SubmissionOptions(**options),
    )
    return {field.name: field for field in build_add_fields(request)}


def test_minimal_add_request():
    fields = _fields()

    torrent = fields["torrents"]
    assert torrent.value == b"d4:infodee"
    assert torrent.filename == "x.torrent"
    assert torrent.content_type == "application/x-bittorrent"
    assert fields["paused"].value == "false"
    assert fields["root_folder"].value == "false"
    for optional in ("savepath", "rename", "category", "connection", "filePriorities"):
        assert optional not in fields


def test_full_add_request():
    fields = _fields(
        savepath=" /downloads ",
        rename="Renamed",
        category=" linux ",
        start_paused=True,
        peer_limit=50,
        file_priorities=[1, 0, 6],
    )

    assert fields["savepath"].value == "/downloads"
    assert fields["rename"].value == "Renamed"
    assert fields["category"].value == "linux"
    assert fields["paused"].value == "true"
    assert fields["connection"].value == "manual"
    assert fields["max-connections"].value == "50"
    assert fields["filePriorities"].value == "1|0|6"


def test_zero_peer_limit_is_not_sent():
    fields = _fields(peer_limit=0)
    assert "connection" not in fields
    assert "max-connections" not in fields


def test_blank_category_is_omitted():
    assert "category" not in _fields(category="   ")


def test_negative_options_are_rejected():
    with pytest.raises(ValueError):
        SubmissionOptions(peer_limit=-1)
    with pytest.raises(ValueError):
        SubmissionOptions(file_priorities=[1, -1])


def test_form_data_is_rebuilt_each_time():
    fields = build_add_fields(
        SubmissionRequest(b"d4:infodee", "x.torrent", SubmissionOptions())
    )
    assert to_form_data(fields) is not to_form_data(fields)
    assert isinstance(to_form_data(fields), aiohttp.FormData)


@pytest.mark.parametrize(
    "body, expected",
    [
        ('{"tv": {}, "movies": {"savePath": "/m"}}', ["movies", "tv"]),
        ('["zeta", "alpha", 3]', ["alpha", "zeta"]),
        ("{}", []),
    ],
)
def test_parse_categories(body, expected):
    assert parse_categories(HttpReply(200, body)) == expected


def test_categories_forbidden():
    with pytest.raises(AuthenticationError):
        parse_categories(HttpReply(403, "Forbidden"))


@pytest.mark.parametrize(
    "reply",
    [HttpReply(500, "boom"), HttpReply(200, "not json"), HttpReply(200, '"text"')],
)
def test_categories_unknown_reply(reply):
    with pytest.raises(UnknownServerError) as excinfo:
        parse_categories(reply)
    assert excinfo.value.status == reply.status


def test_service_error_mapping():
    assert isinstance(
        service_error(aiohttp.ClientConnectionError("refused"), "http://x"),
        ServiceConnectionError,
    )
    timeout = service_error(asyncio.TimeoutError(), "http://x")
    assert isinstance(timeout, ServiceTimeoutError)
    assert isinstance(timeout, ServiceConnectionError)


def test_reply_text_is_trimmed():
    assert HttpReply(200, " Ok.\n").text == "Ok."


# URL helpers


def test_origin_and_api_base():
    url = "HTTPS://NAS.local:8443/qbittorrent/"
    assert origin_of(url) == "https://nas.local:8443"
    assert api_base(url) == "https://nas.local:8443/qbittorrent"
    assert endpoint_url(url, "torrents/add") == (
        "https://nas.local:8443/qbittorrent/api/v2/torrents/add"
    )


def test_endpoint_url_without_path():
    assert endpoint_url("http://127.0.0.1:8080", "/auth/login") == (
        "http://127.0.0.1:8080/api/v2/auth/login"
    )


def test_sanitize_rename():
    assert sanitize_rename(None) is None
    assert sanitize_rename("   ") is None
    assert sanitize_rename(" Movie (2020) ") == "Movie (2020)"
    assert "/" not in sanitize_rename("a/b")
