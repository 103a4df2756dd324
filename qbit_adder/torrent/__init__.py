"""
Torrent File Layer.

This package reads .torrent files: the bencode codec, the human-facing
metadata extractor and the info-hash calculation used for duplicate detection.
"""

from .bencode import decode, encode, loads, skip
from .infohash import compute_info_hash, compute_info_hash_from_file
from .metadata import FileEntry, TorrentMetadata, parse_torrent_bytes, parse_torrent_file

__all__ = [
    "FileEntry",
    "TorrentMetadata",
    "compute_info_hash",
    "compute_info_hash_from_file",
    "decode",
    "encode",
    "loads",
    "parse_torrent_bytes",
    "parse_torrent_file",
    "skip",
]
