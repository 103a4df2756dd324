"""
Computes the v1 info-hash of a torrent straight from its raw bytes.

The hash must cover the exact byte span of the "info" value as it appears in
the file, so the top-level dictionary is only skip-scanned, never decoded and
re-encoded.
"""

import hashlib
import logging
from pathlib import Path
from typing import Optional

from qbit_adder.exceptions import ParseError

from .bencode import decode, skip

log = logging.getLogger(__name__)

_DICT_MARKER = ord("d")
_END_MARKER = ord("e")


def compute_info_hash(buffer: bytes) -> Optional[str]:
    """
    Finds the top-level "info" value and returns the SHA-1 of its raw bytes.

    Args:
        buffer: Contents of a .torrent file.

    Returns:
        The 40 character lowercase hex digest, or None when no identity can be
        established (not a dictionary, no "info" key, or malformed data).
    """
    if not isinstance(buffer, (bytes, bytearray)) or not buffer:
        return None
    if buffer[0] != _DICT_MARKER:
        return None

    pos = 1
    try:
        while pos < len(buffer) and buffer[pos] != _END_MARKER:
            key, value_start = decode(buffer, pos)
            if not isinstance(key, bytes):
                log.debug(f"Info-hash unavailable, non-string key at byte {pos}.")
                return None
            value_end = skip(buffer, value_start)
            if key == b"info":
                return hashlib.sha1(buffer[value_start:value_end]).hexdigest()  # noqa: S324
            pos = value_end
    except ParseError as e:
        log.debug(f"Info-hash unavailable, malformed torrent data: {e}")
        return None

    log.debug("Info-hash unavailable, no 'info' key in torrent.")
    return None


def compute_info_hash_from_file(file_path: str | Path) -> Optional[str]:
    """Reads a .torrent file and computes its info-hash; unreadable files give None."""
    try:
        data = Path(file_path).read_bytes()
    except OSError as e:
        log.debug(f"Cannot read '{file_path}' for info-hash: {e}")
        return None
    return compute_info_hash(data)
