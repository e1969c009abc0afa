"""Bencode encoding and decoding for KRPC messages."""

from __future__ import annotations

import re
from typing import Any, List, Tuple

_INT_RE = re.compile(rb"-?(0|[1-9][0-9]*)")


class BencodeError(ValueError):
    """Data could not be bencoded or decoded."""


def _key_bytes(key: Any) -> bytes:
    if isinstance(key, str):
        return key.encode("utf-8")
    if isinstance(key, (bytes, bytearray, memoryview)):
        return bytes(key)
    raise BencodeError(f"dictionary keys must be strings, got {type(key).__name__}")


def _encode(value: Any, out: List[bytes]) -> None:
    if isinstance(value, bool):
        raise BencodeError("booleans cannot be bencoded")
    if isinstance(value, int):
        out.append(b"i%de" % value)
    elif isinstance(value, (bytes, bytearray, memoryview)):
        data = bytes(value)
        out.append(b"%d:" % len(data))
        out.append(data)
    elif isinstance(value, str):
        _encode(value.encode("utf-8"), out)
    elif isinstance(value, (list, tuple)):
        out.append(b"l")
        for item in value:
            _encode(item, out)
        out.append(b"e")
    elif isinstance(value, dict):
        items: List[Tuple[bytes, Any]] = sorted(
            ((_key_bytes(k), v) for k, v in value.items()), key=lambda kv: kv[0]
        )
        out.append(b"d")
        previous = None
        for key, item in items:
            if key == previous:
                raise BencodeError(f"duplicate dictionary key {key!r}")
            previous = key
            _encode(key, out)
            _encode(item, out)
        out.append(b"e")
    else:
        raise BencodeError(f"cannot bencode {type(value).__name__}")


def encode(value: Any) -> bytes:
    """Bencode ``value``: ints, bytes, str, lists, tuples and dicts."""
    out: List[bytes] = []
    _encode(value, out)
    return b"".join(out)


class _Decoder:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def _peek(self) -> int:
        if self.pos >= len(self.data):
            raise BencodeError("unexpected end of data")
        return self.data[self.pos]

    def value(self) -> Any:
        lead = self._peek()
        if lead == ord("i"):
            return self._int()
        if lead == ord("l"):
            self.pos += 1
            items = []
            while self._peek() != ord("e"):
                items.append(self.value())
            self.pos += 1
            return items
        if lead == ord("d"):
            self.pos += 1
            result = {}
            while self._peek() != ord("e"):
                if not chr(self._peek()).isdigit():
                    raise BencodeError("dictionary keys must be byte strings")
                key = self._bytes()
                if key in result:
                    raise BencodeError(f"duplicate dictionary key {key!r}")
                result[key] = self.value()
            self.pos += 1
            return result
        if ord("0") <= lead <= ord("9"):
            return self._bytes()
        raise BencodeError(f"unexpected byte {bytes([lead])!r} at {self.pos}")

    def _int(self) -> int:
        end = self.data.find(b"e", self.pos + 1)
        if end < 0:
            raise BencodeError("unterminated integer")
        text = self.data[self.pos + 1:end]
        if not _INT_RE.fullmatch(text) or text == b"-0":
            raise BencodeError(f"invalid integer {text!r}")
        self.pos = end + 1
        return int(text)

    def _bytes(self) -> bytes:
        colon = self.data.find(b":", self.pos)
        if colon < 0:
            raise BencodeError("unterminated string length")
        text = self.data[self.pos:colon]
        if not text.isdigit():
            raise BencodeError(f"invalid string length {text!r}")
        length = int(text)
        start = colon + 1
        end = start + length
        if end > len(self.data):
            raise BencodeError("string runs past end of data")
        self.pos = end
        return self.data[start:end]


def decode(data: bytes) -> Any:
    """Decode one bencoded value; strings come back as bytes."""
    decoder = _Decoder(bytes(data))
    try:
        result = decoder.value()
    except RecursionError as exc:
        raise BencodeError("data nested too deeply") from exc
    if decoder.pos != len(decoder.data):
        raise BencodeError("trailing data after bencoded value")
    return result