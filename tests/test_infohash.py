import hashlib

import pytest

from qbit_adder.torrent.bencode import encode
from qbit_adder.torrent.infohash import compute_info_hash, compute_info_hash_from_file

from .conftest import make_torrent


def test_hash_covers_exact_info_bytes():
    buffer = b"d4:infod4:name4:test6:lengthi5eee"
    expected = hashlib.sha1(b"d4:name4:test6:lengthi5ee").hexdigest()

    assert compute_info_hash(buffer) == expected


def test_hash_is_independent_of_sibling_keys():
    info = b"d4:name4:test6:lengthi5ee"
    before = b"d8:announce3:url4:info" + info + b"e"
    after = b"d4:info" + info + b"7:comment5:hello4:listli1ei2eee"

    assert compute_info_hash(before) == compute_info_hash(after)
    assert compute_info_hash(before) == hashlib.sha1(info).hexdigest()


def test_hash_uses_original_bytes_not_a_re_encoding():
    # Unsorted keys: a decode/encode round trip would reorder them.
    info = b"d6:lengthi5e4:name4:teste"
    buffer = b"d4:info" + info + b"e"
    assert compute_info_hash(buffer) == hashlib.sha1(info).hexdigest()


def test_hash_format():
    digest = compute_info_hash(make_torrent())
    assert len(digest) == 40
    assert digest == digest.lower()
    int(digest, 16)


@pytest.mark.parametrize(
    "buffer",
    [
        b"",
        b"l4:infoe",
        b"i1e",
        b"d8:announce3:urle",
        b"d4:infod4:name",
        b"d4:info",
        b"di1e4:infoe",
    ],
)
def test_unavailable_without_raising(buffer):
    assert compute_info_hash(buffer) is None


def test_non_bytes_input_is_unavailable():
    assert compute_info_hash("d4:infodee") is None


def test_from_file(tmp_path):
    data = make_torrent(name="pack")
    path = tmp_path / "pack.torrent"
    path.write_bytes(data)

    assert compute_info_hash_from_file(path) == compute_info_hash(data)


def test_from_missing_file_is_unavailable(tmp_path):
    assert compute_info_hash_from_file(tmp_path / "missing.torrent") is None


def test_encoded_fixture_matches_hash_of_info_encoding():
    info = {"name": "x", "length": 1}
    buffer = encode({"info": info, "zz": 1})
    assert compute_info_hash(buffer) == hashlib.sha1(encode(info)).hexdigest()
