"""
Builds the human-facing description of a torrent (name, file list, total size)
shown before the torrent is submitted.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from qbit_adder.exceptions import ParseError, TorrentFileNotFoundError

from .bencode import BencodeValue, loads

log = logging.getLogger(__name__)

DEFAULT_TORRENT_NAME = "torrent"
DEFAULT_FILE_NAME = "file"


@dataclass(frozen=True)
class FileEntry:
    """A single file inside a torrent, in the order the torrent lists it."""

    index: int
    path: str
    length: int


@dataclass(frozen=True)
class TorrentMetadata:
    """Immutable summary of a torrent's contents."""

    name: str
    files: Tuple[FileEntry, ...]

    @property
    def total_size(self) -> int:
        return sum(entry.length for entry in self.files)

    @property
    def is_multi_file(self) -> bool:
        return len(self.files) > 1


def _to_text(value: Any) -> str:
    """Decodes a bencoded byte string for display; invalid UTF-8 is replaced."""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, list):
        return "/".join(_to_text(part) for part in value)
    raise ParseError(f"Expected text, got {type(value).__name__}")


def _pick(container: Dict[str, BencodeValue], key: str) -> Optional[BencodeValue]:
    """Prefers the explicit '<key>.utf-8' variant some clients write."""
    value = container.get(f"{key}.utf-8")
    if value is None:
        value = container.get(key)
    return value


def _length_of(container: Dict[str, BencodeValue], where: str) -> int:
    length = container.get("length", 0)
    if isinstance(length, bool) or not isinstance(length, int):
        raise ParseError(f"Length of {where} is not an integer")
    if length < 0:
        raise ParseError(f"Length of {where} is negative ({length})")
    return length


def _multi_file_entries(files: List[BencodeValue]) -> List[FileEntry]:
    entries = []
    for index, raw_entry in enumerate(files):
        if not isinstance(raw_entry, dict):
            raise ParseError(f"File entry {index} is not a dictionary")
        raw_path = _pick(raw_entry, "path")
        path = _to_text(raw_path) if raw_path is not None else ""
        entries.append(
            FileEntry(index=index, path=path, length=_length_of(raw_entry, path))
        )
    return entries


def build_metadata(root: BencodeValue) -> TorrentMetadata:
    """
    Extracts a TorrentMetadata from a decoded torrent.

    Args:
        root: The decoded top-level value of a .torrent file.

    Returns:
        The torrent's name and file listing.

    Raises:
        ParseError: If the structure cannot describe a torrent.
    """
    if not isinstance(root, dict):
        raise ParseError("Torrent root is not a dictionary")

    info = root.get("info")
    if not isinstance(info, dict):
        # Some hand-made files put the info keys directly at the root.
        log.debug("No 'info' dictionary found, reading the root as info.")
        info = root

    raw_name = _pick(info, "name")
    name = _to_text(raw_name) if raw_name is not None else DEFAULT_TORRENT_NAME

    files = info.get("files")
    if isinstance(files, list):
        entries = _multi_file_entries(files)
    else:
        single_name = _to_text(raw_name) if raw_name is not None else DEFAULT_FILE_NAME
        entries = [FileEntry(index=0, path=single_name, length=_length_of(info, name))]

    return TorrentMetadata(name=name, files=tuple(entries))


def parse_torrent_bytes(data: bytes) -> TorrentMetadata:
    """Decodes raw .torrent bytes and extracts their metadata."""
    return build_metadata(loads(data))


def parse_torrent_file(file_path: str | Path) -> TorrentMetadata:
    """
    Reads a .torrent file from disk and extracts its metadata.

    Raises:
        TorrentFileNotFoundError: If the file does not exist.
        ParseError: If the file is not a valid torrent.
        OSError: For any other read failure.
    """
    path = Path(file_path)
    try:
        data = path.read_bytes()
    except FileNotFoundError as e:
        raise TorrentFileNotFoundError(f"Torrent file not found: '{path}'") from e

    metadata = parse_torrent_bytes(data)
    log.debug(
        f"Parsed '{path.name}': {len(metadata.files)} file(s), "
        f"{metadata.total_size} bytes."
    )
    return metadata
