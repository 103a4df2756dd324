"""
Minimal bencode codec for .torrent files.

Decoding is a single forward pass over the buffer. ``skip`` walks a value with
exactly the same validation as ``decode`` but only reports where the value ends,
so callers can work with the original byte span instead of a re-encoding.
"""

from typing import Any, Dict, List, Tuple, Union

from qbit_adder.exceptions import BencodeTypeError, ParseError

BencodeValue = Union[int, bytes, List["BencodeValue"], Dict[str, "BencodeValue"]]

# Each nesting level costs two interpreter frames while decoding.
MAX_DEPTH = 200

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_MAX_LENGTH_DIGITS = 19

_INT = ord("i")
_LIST = ord("l")
_DICT = ord("d")
_END = ord("e")
_ZERO = ord("0")
_NINE = ord("9")


def _as_buffer(data: Any) -> bytes:
    if isinstance(data, (bytes, bytearray)):
        return data
    if isinstance(data, memoryview):
        return data.tobytes()
    raise BencodeTypeError(f"Expected bytes, got {type(data).__name__}")


def _is_digit(byte: int) -> bool:
    return _ZERO <= byte <= _NINE


def _integer_end(buffer: bytes, offset: int) -> Tuple[int, int]:
    """Parses ``i<digits>e`` at offset, returning the value and the next offset."""
    end = buffer.find(b"e", offset + 1, offset + 2 + _MAX_LENGTH_DIGITS + 1)
    if end == -1:
        raise ParseError("Unterminated or oversized integer", offset)

    digits = buffer[offset + 1 : end]
    unsigned = digits[1:] if digits.startswith(b"-") else digits
    if not unsigned.isdigit():
        raise ParseError(f"Invalid integer {bytes(digits)!r}", offset)

    value = int(digits)
    if not INT64_MIN <= value <= INT64_MAX:
        raise ParseError("Integer does not fit in 64 bits", offset)
    return value, end + 1


def _string_span(buffer: bytes, offset: int) -> Tuple[int, int]:
    """Returns the ``[start, end)`` span of the payload of ``<len>:<bytes>``."""
    colon = buffer.find(b":", offset, offset + _MAX_LENGTH_DIGITS + 1)
    if colon == -1:
        raise ParseError("Missing ':' after byte string length", offset)

    prefix = buffer[offset:colon]
    if not prefix.isdigit():
        raise ParseError(f"Non-digit byte string length {bytes(prefix)!r}", offset)

    start = colon + 1
    end = start + int(prefix)
    if end > len(buffer):
        raise ParseError("Byte string runs past the end of the data", offset)
    return start, end


def _check_depth(depth: int, offset: int) -> None:
    if depth >= MAX_DEPTH:
        raise ParseError(f"Nesting deeper than {MAX_DEPTH} levels", offset)


def _decode(buffer: bytes, offset: int, depth: int) -> Tuple[BencodeValue, int]:
    if offset >= len(buffer):
        raise ParseError("Unexpected end of data", offset)

    marker = buffer[offset]
    if marker == _INT:
        return _integer_end(buffer, offset)
    if _is_digit(marker):
        start, end = _string_span(buffer, offset)
        return bytes(buffer[start:end]), end
    if marker == _LIST:
        _check_depth(depth, offset)
        return _decode_list(buffer, offset, depth)
    if marker == _DICT:
        _check_depth(depth, offset)
        return _decode_dict(buffer, offset, depth)
    raise ParseError(f"Invalid type marker {bytes([marker])!r}", offset)


def _decode_list(buffer: bytes, offset: int, depth: int) -> Tuple[list, int]:
    items: List[BencodeValue] = []
    pos = offset + 1
    while True:
        if pos >= len(buffer):
            raise ParseError("Unterminated list", offset)
        if buffer[pos] == _END:
            return items, pos + 1
        item, pos = _decode(buffer, pos, depth + 1)
        items.append(item)


def _decode_dict(buffer: bytes, offset: int, depth: int) -> Tuple[dict, int]:
    result: Dict[str, BencodeValue] = {}
    pos = offset + 1
    while True:
        if pos >= len(buffer):
            raise ParseError("Unterminated dictionary", offset)
        if buffer[pos] == _END:
            return result, pos + 1
        if not _is_digit(buffer[pos]):
            raise ParseError("Dictionary key is not a byte string", pos)

        key_start, pos = _string_span(buffer, pos)
        key = bytes(buffer[key_start:pos]).decode("utf-8", "surrogateescape")
        value, pos = _decode(buffer, pos, depth + 1)
        # Duplicate keys: the last occurrence wins.
        result[key] = value


def _skip(buffer: bytes, offset: int, depth: int) -> int:
    if offset >= len(buffer):
        raise ParseError("Unexpected end of data", offset)

    marker = buffer[offset]
    if marker == _INT:
        return _integer_end(buffer, offset)[1]
    if _is_digit(marker):
        return _string_span(buffer, offset)[1]
    if marker in (_LIST, _DICT):
        _check_depth(depth, offset)
        pos = offset + 1
        while True:
            if pos >= len(buffer):
                raise ParseError("Unterminated container", offset)
            if buffer[pos] == _END:
                return pos + 1
            if marker == _DICT:
                if not _is_digit(buffer[pos]):
                    raise ParseError("Dictionary key is not a byte string", pos)
                pos = _string_span(buffer, pos)[1]
            pos = _skip(buffer, pos, depth + 1)
    raise ParseError(f"Invalid type marker {bytes([marker])!r}", offset)


def decode(data: bytes, offset: int = 0) -> Tuple[BencodeValue, int]:
    """
    Decodes the bencoded value starting at ``offset``.

    Args:
        data: The raw buffer.
        offset: Where the value starts.

    Returns:
        A tuple of the decoded value and the offset just past it.

    Raises:
        ParseError: If the data is truncated or malformed.
    """
    return _decode(_as_buffer(data), offset, 0)


def skip(data: bytes, offset: int = 0) -> int:
    """Returns the offset just past the value at ``offset`` without building it."""
    return _skip(_as_buffer(data), offset, 0)


def loads(data: bytes) -> BencodeValue:
    """Decodes the value at the start of ``data``. Trailing bytes are ignored."""
    return decode(data, 0)[0]


def encode(value: Any) -> bytes:
    """Encodes a value; ``str`` is written as UTF-8 and dictionary keys are sorted."""
    out = bytearray()
    _encode(value, out)
    return bytes(out)


def _encode(value: Any, out: bytearray) -> None:
    if isinstance(value, bool):
        raise BencodeTypeError("Booleans have no bencode representation")
    if isinstance(value, int):
        out += b"i%de" % value
    elif isinstance(value, (bytes, bytearray)):
        out += b"%d:" % len(value)
        out += value
    elif isinstance(value, str):
        _encode(value.encode("utf-8", "surrogateescape"), out)
    elif isinstance(value, (list, tuple)):
        out += b"l"
        for item in value:
            _encode(item, out)
        out += b"e"
    elif isinstance(value, dict):
        items = []
        for key, item in value.items():
            if isinstance(key, str):
                key = key.encode("utf-8", "surrogateescape")
            elif not isinstance(key, (bytes, bytearray)):
                raise BencodeTypeError(
                    f"Dictionary keys must be text or bytes, got {type(key).__name__}"
                )
            items.append((bytes(key), item))
        out += b"d"
        for key, item in sorted(items, key=lambda pair: pair[0]):
            _encode(key, out)
            _encode(item, out)
        out += b"e"
    else:
        raise BencodeTypeError(f"Cannot bencode {type(value).__name__}")


# Typed accessors


def as_int(value: BencodeValue) -> int:
    if not isinstance(value, int):
        raise BencodeTypeError(f"Expected an integer, got {type(value).__name__}")
    return value


def as_bytes(value: BencodeValue) -> bytes:
    if not isinstance(value, bytes):
        raise BencodeTypeError(f"Expected a byte string, got {type(value).__name__}")
    return value


def as_list(value: BencodeValue) -> List[BencodeValue]:
    if not isinstance(value, list):
        raise BencodeTypeError(f"Expected a list, got {type(value).__name__}")
    return value


def as_dict(value: BencodeValue) -> Dict[str, BencodeValue]:
    if not isinstance(value, dict):
        raise BencodeTypeError(f"Expected a dictionary, got {type(value).__name__}")
    return value
