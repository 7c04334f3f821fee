# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""
Bounds-checked access to the bytes of a mapped cache file.

Cache files are untrusted input: every count, size and offset they declare is
checked here before it is used to index the buffer, and every failed check
raises a :class:`~dynamic_loader_cache.exceptions.ParseError` carrying the
absolute offset of the failed read. Nothing above this module slices a mapping
directly.
"""
from __future__ import annotations

import struct
import sys
from enum import Enum
from functools import lru_cache

from .exceptions import OffsetIsInvalidError, ParseError, StringNotTerminatedError

USIZE_MAX = sys.maxsize * 2 + 1
U32_MAX = 0xFFFFFFFF


def saturating_add(a, b, limit=USIZE_MAX):
    return min(a + b, limit)


def saturating_mul(a, b, limit=USIZE_MAX):
    return min(a * b, limit)


def saturating_sub(a, b):
    return max(a - b, 0)


class ByteOrder(Enum):
    """Byte orders, valued by their :mod:`struct` prefix."""

    NATIVE = "="
    LITTLE = "<"
    BIG = ">"


class DataModel(Enum):
    """Width of a C ``long``, valued by its :mod:`struct` code.

    See https://en.wikipedia.org/wiki/64-bit_computing#64-bit_data_models
    """

    # c_int=i32 c_long=i32
    ILP32 = "I"
    # c_int=i32 c_long=i64
    LP64 = "Q"

    @property
    def word_size(self):
        return struct.calcsize("=" + self.value)


class ErrorKind(Enum):
    EOF = "Eof"
    TAG = "Tag"
    TOO_LARGE = "TooLarge"
    IS_A = "IsA"

    def __str__(self):
        return self.value


@lru_cache(maxsize=None)
def record_struct(byte_order: ByteOrder, fmt: str) -> struct.Struct:
    """Compile `fmt` (standard sizes, no alignment) for `byte_order`."""
    return struct.Struct(byte_order.value + fmt)


def word_struct(byte_order: ByteOrder, data_model: DataModel, count=1) -> struct.Struct:
    """A run of `count` C ``long`` words as laid out by `data_model`."""
    return record_struct(byte_order, f"{count}{data_model.value}")


class BoundedReader:
    """A read-only window ``[start, end)`` over `data`.

    `data` is anything supporting the buffer protocol, slicing and ``find``
    (an ``mmap.mmap`` or ``bytes``). Offsets passed to the methods are
    relative to `start`.
    """

    def __init__(self, data, start=0, end=None, byte_order=ByteOrder.NATIVE, path=None):
        size = len(data)
        if end is None:
            end = size
        if not 0 <= start <= end <= size:
            raise ValueError(f"window [{start}, {end}) is outside of a {size} bytes buffer")
        self.data = data
        self.start = start
        self.end = end
        self.byte_order = byte_order
        self.path = path

    def __len__(self):
        return self.end - self.start

    def __repr__(self):
        return (
            f"{type(self).__name__}(start={self.start}, end={self.end}, "
            f"byte_order={self.byte_order.name}, path={self.path!r})"
        )

    def error(self, offset, kind):
        return ParseError(self.path, self.start + offset, kind)

    def with_byte_order(self, byte_order):
        return type(self)(self.data, self.start, self.end, byte_order, self.path)

    def require(self, size):
        """Fail unless at least `size` bytes are present."""
        if size > len(self):
            raise self.error(len(self), ErrorKind.EOF)

    def _check(self, offset, size):
        if offset < 0 or saturating_add(offset, size) > len(self):
            raise self.error(offset, ErrorKind.EOF)

    def window(self, offset, size):
        self._check(offset, size)
        start = self.start + offset
        return type(self)(self.data, start, start + size, self.byte_order, self.path)

    def bytes_at(self, offset, size):
        self._check(offset, size)
        start = self.start + offset
        return bytes(self.data[start : start + size])

    def has_tag(self, offset, expected):
        if offset < 0 or offset + len(expected) > len(self):
            return False
        start = self.start + offset
        return self.data[start : start + len(expected)] == expected

    def tag(self, offset, expected):
        if not self.has_tag(offset, expected):
            raise self.error(offset, ErrorKind.TAG)

    def unpack(self, fmt, offset=0):
        """Decode `fmt` (a format string or a compiled ``struct.Struct``) at `offset`.

        Format strings get this reader's byte order; a compiled struct keeps
        its own.
        """
        if isinstance(fmt, str):
            fmt = record_struct(self.byte_order, fmt)
        self._check(offset, fmt.size)
        return fmt.unpack_from(self.data, self.start + offset)

    def u8(self, offset):
        return self.unpack("B", offset)[0]

    def u32(self, offset):
        return self.unpack("I", offset)[0]

    def u64(self, offset):
        return self.unpack("Q", offset)[0]

    def word(self, offset, data_model):
        return self.unpack(data_model.value, offset)[0]

    def cstring(self, offset):
        """The nul-terminated bytes starting at `offset`, without the terminator."""
        if offset < 0 or offset > len(self):
            raise OffsetIsInvalidError(self.path, offset)
        begin = self.start + offset
        nul = self.data.find(b"\0", begin, self.end)
        if nul < 0:
            raise StringNotTerminatedError(self.path, offset)
        return bytes(self.data[begin:nul])
