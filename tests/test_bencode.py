import pytest

from qbit_adder.exceptions import BencodeTypeError, ParseError
from qbit_adder.torrent.bencode import (
    INT64_MAX,
    INT64_MIN,
    MAX_DEPTH,
    as_bytes,
    as_dict,
    as_int,
    as_list,
    decode,
    encode,
    loads,
    skip,
)


@pytest.mark.parametrize(
    "data, expected",
    [
        (b"i42e", 42),
        (b"i-7e", -7),
        (b"i0e", 0),
        (b"4:spam", b"spam"),
        (b"0:", b""),
        (b"le", []),
        (b"l4:spami3ee", [b"spam", 3]),
        (b"de", {}),
        (b"d3:cow3:moo4:spaml1:a1:bee", {"cow": b"moo", "spam": [b"a", b"b"]}),
    ],
)
def test_decode_values(data, expected):
    value, end = decode(data)
    assert value == expected
    assert end == len(data)


def test_decode_returns_offset_of_next_value():
    data = b"i1e4:abcdi2e"
    first, pos = decode(data)
    second, pos = decode(data, pos)
    third, pos = decode(data, pos)
    assert (first, second, third) == (1, b"abcd", 2)
    assert pos == len(data)


def test_round_trip_preserves_values():
    value = {
        "announce": b"http://tracker/announce",
        "info": {
            "files": [{"length": 10, "path": [b"a.txt"]}],
            "name": b"pack",
            "pieces": bytes(range(20)),
        },
        "list": [1, -2, [b"nested", {}], b""],
    }
    assert loads(encode(value)) == value


def test_byte_strings_are_not_decoded_as_text():
    assert loads(b"2:\xff\xfe") == b"\xff\xfe"


def test_loads_ignores_trailing_bytes():
    assert loads(b"i5etrailing") == 5


def test_duplicate_keys_last_write_wins():
    assert loads(b"d1:ai1e1:ai2ee") == {"a": 2}


def test_non_utf8_keys_survive_as_surrogates():
    decoded = loads(b"d2:\xff\xfei1ee")
    (key,) = decoded
    assert key.encode("utf-8", "surrogateescape") == b"\xff\xfe"


def test_64_bit_integer_limits():
    assert loads(b"i%de" % INT64_MAX) == INT64_MAX
    assert loads(b"i%de" % INT64_MIN) == INT64_MIN
    with pytest.raises(ParseError):
        loads(b"i%de" % (INT64_MAX + 1))


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"i12",
        b"ie",
        b"i1x2e",
        b"5:abc",
        b"x:abc",
        b"3abc",
        b"l1:a",
        b"d1:a",
        b"di1ei2ee",
        b"d1:ae",
        b"q",
    ],
)
def test_malformed_input_raises_parse_error(data):
    with pytest.raises(ParseError):
        decode(data)
    with pytest.raises(ParseError):
        skip(data)


def test_parse_error_carries_offset():
    with pytest.raises(ParseError) as excinfo:
        decode(b"l4:spamxe")
    assert excinfo.value.offset == 7
    assert "at byte 7" in str(excinfo.value)


def test_parse_error_is_a_value_error():
    with pytest.raises(ValueError):
        loads(b"l")


def test_nesting_depth_is_bounded():
    ok = b"l" * MAX_DEPTH + b"e" * MAX_DEPTH
    assert skip(ok) == len(ok)
    decode(ok)

    too_deep = b"l" * (MAX_DEPTH + 1) + b"e" * (MAX_DEPTH + 1)
    with pytest.raises(ParseError):
        decode(too_deep)
    with pytest.raises(ParseError):
        skip(too_deep)


def test_deeply_nested_garbage_does_not_exhaust_the_stack():
    with pytest.raises(ParseError):
        loads(b"l" * 100_000)


@pytest.mark.parametrize(
    "data",
    [b"i-12e", b"10:0123456789", b"ld1:xi1eee", b"d4:infod4:name1:ae3:zzzi0ee"],
)
def test_skip_ends_where_decode_ends(data):
    assert skip(data) == decode(data)[1] == len(data)


def test_skip_from_offset():
    data = b"d1:ai1e1:bl1:xee"
    assert skip(data, 4) == 7


def test_decode_accepts_bytearray_and_memoryview():
    assert loads(bytearray(b"i3e")) == 3
    assert loads(memoryview(b"3:abc")) == b"abc"


def test_decode_rejects_text():
    with pytest.raises(BencodeTypeError):
        loads("i3e")


def test_encode_sorts_keys_and_writes_text_as_utf8():
    assert encode({"b": 1, "a": "é"}) == b"d1:a2:\xc3\xa91:bi1ee"


@pytest.mark.parametrize("value", [True, 1.5, None, {1: b"x"}, object()])
def test_encode_rejects_unrepresentable_values(value):
    with pytest.raises(BencodeTypeError):
        encode(value)


def test_typed_accessors():
    assert as_int(3) == 3
    assert as_bytes(b"x") == b"x"
    assert as_list([1]) == [1]
    assert as_dict({"k": 1}) == {"k": 1}

    with pytest.raises(BencodeTypeError):
        as_int(b"3")
    with pytest.raises(BencodeTypeError):
        as_bytes("x")
    with pytest.raises(BencodeTypeError):
        as_list({})
    with pytest.raises(BencodeTypeError):
        as_dict([])
