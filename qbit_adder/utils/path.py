"""
Utilities for handling WebUI URLs and torrent file names.
"""

from pathlib import Path
from urllib.parse import urlsplit

from pathvalidate import sanitize_filename


def origin_of(url: str) -> str:
    """
    Returns the origin ('scheme://host[:port]') of a URL, lowercased.

    The origin is the scope of the isolated cookie store and the value sent in
    the 'Origin' header.
    """
    parts = urlsplit(url.strip())
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}"


def api_base(url: str) -> str:
    """
    Returns origin plus path without a trailing slash.

    A WebUI served under a sub-path (reverse proxy) keeps that path, so the API
    lives at '<origin>/<path>/api/v2/...'.
    """
    parts = urlsplit(url.strip())
    return f"{origin_of(url)}{parts.path.rstrip('/')}"


def endpoint_url(url: str, endpoint: str) -> str:
    """Builds the full URL of an API endpoint such as 'torrents/add'."""
    return f"{api_base(url)}/api/v2/{endpoint.lstrip('/')}"


def upload_filename(torrent_path: Path) -> str:
    """The file name sent with the multipart upload."""
    return torrent_path.name or "upload.torrent"


def sanitize_rename(name: str | None) -> str | None:
    """
    Cleans a user-supplied torrent name so it cannot introduce sub-folders or
    characters the server's filesystem rejects.
    """
    if not name or not name.strip():
        return None
    cleaned = sanitize_filename(name.strip(), platform="auto")
    return cleaned or None
