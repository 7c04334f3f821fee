# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""
Cache of the old GNU/Linux dynamic loader, ``ld.so-1.7.0`` format.

The file carries no byte order marker, so only caches written by a loader of
the same byte order as this host can be read. The string table follows the
last entry, and entries point into it::

    struct cache_file {
        char magic[11];              "ld.so-1.7.0"
        char padding[1];
        unsigned int nlibs;
        struct file_entry libs[nlibs];
        strings...
    };

    struct file_entry {
        int flags;
        unsigned int key, value;
    };
"""
from __future__ import annotations

from ..config import LD_SO_1_7_0
from ..reader import (
    U32_MAX,
    BoundedReader,
    ByteOrder,
    ErrorKind,
    record_struct,
    saturating_add,
    saturating_mul,
    saturating_sub,
)
from .base import CacheProvider, RecordIterator

CACHE_FILE_PATH = "/etc/ld.so.cache"

MAGIC = b"ld.so-1.7.0"

# magic, padding, lib_count
HEADER_FORMAT = "11s1xI"
HEADER_SIZE = record_struct(ByteOrder.NATIVE, HEADER_FORMAT).size
LIB_COUNT_OFFSET = 12

# flags, key, value; only key and value are decoded
ENTRY_FORMAT = "4xII"
ENTRY_SIZE = record_struct(ByteOrder.NATIVE, ENTRY_FORMAT).size

MAX_LIB_COUNT = saturating_sub(U32_MAX, HEADER_SIZE) // ENTRY_SIZE


class LdSo17Cache(CacheProvider):
    """Cache of the old GNU/Linux dynamic loader (e.g. ``/etc/ld.so.cache``)."""

    format_name = LD_SO_1_7_0
    default_paths = (CACHE_FILE_PATH,)

    def __init__(self, path, map, lib_count):
        super().__init__(path, map)
        self.lib_count = lib_count

    @classmethod
    def parse(cls, reader):
        return {"lib_count": cls.parse_header(reader)}

    @staticmethod
    def parse_header(reader: BoundedReader) -> int:
        reader = reader.with_byte_order(ByteOrder.NATIVE)
        reader.tag(0, MAGIC)
        _, lib_count = reader.unpack(HEADER_FORMAT)

        if lib_count > MAX_LIB_COUNT:
            raise reader.error(0, ErrorKind.TOO_LARGE)

        reader.require(saturating_add(HEADER_SIZE, saturating_mul(ENTRY_SIZE, lib_count)))
        return lib_count

    def iter(self):
        reader = self.reader()
        entries_size = saturating_mul(ENTRY_SIZE, self.lib_count)
        entries_end = HEADER_SIZE + entries_size
        entries = reader.window(HEADER_SIZE, entries_size)
        string_table = reader.window(entries_end, len(reader) - entries_end)
        return RecordIterator(self, entries, string_table, ENTRY_FORMAT)
