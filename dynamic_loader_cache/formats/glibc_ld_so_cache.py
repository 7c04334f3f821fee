# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""
Cache of the GNU/Linux dynamic loader, ``glibc-ld.so.cache1.1`` format.

Works for caches of 32-bit or 64-bit architectures, in either byte order::

    struct cache_file_new {
        char magic[20];              "glibc-ld.so.cache1.1"
        uint32_t nlibs;
        uint32_t len_strings;
        uint8_t flags;               low 2 bits: byte order
        uint8_t padding_unsed[3];
        uint32_t extension_offset;
        uint32_t unused[3];
        struct file_entry_new libs[nlibs];
        strings...
    };

    struct file_entry_new {
        int32_t flags;
        uint32_t key, value;         offsets from the start of the file
        uint32_t osversion;
        uint64_t hwcap;
    };
"""
from __future__ import annotations

from ..config import GLIBC_LD_SO_CACHE_1_1
from ..reader import (
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

MAGIC = b"glibc-ld.so.cache1.1"

# magic, lib_count, string_table_size, flags, flags padding, extension_offset, unused
HEADER_FORMAT = "20sIIB3xI3I"
HEADER_SIZE = record_struct(ByteOrder.NATIVE, HEADER_FORMAT).size
FLAGS_OFFSET = 28

# flags, key, value, os_version, hw_cap; only key and value are decoded
ENTRY_FORMAT = "4xII4x8x"
ENTRY_SIZE = record_struct(ByteOrder.NATIVE, ENTRY_FORMAT).size

BYTE_ORDERS = {
    0b00: ByteOrder.NATIVE,
    0b10: ByteOrder.LITTLE,
    0b11: ByteOrder.BIG,
}


class GlibcLdSoCache(CacheProvider):
    """Cache of the GNU/Linux dynamic loader (e.g. ``/etc/ld.so.cache``)."""

    format_name = GLIBC_LD_SO_CACHE_1_1
    default_paths = (CACHE_FILE_PATH,)

    def __init__(self, path, map, byte_order, lib_count):
        super().__init__(path, map)
        self.byte_order = byte_order
        self.lib_count = lib_count

    @classmethod
    def parse(cls, reader):
        byte_order = cls.parse_byte_order(reader)
        lib_count = cls.parse_header(reader.with_byte_order(byte_order))
        return {"byte_order": byte_order, "lib_count": lib_count}

    @staticmethod
    def parse_byte_order(reader: BoundedReader) -> ByteOrder:
        flags = reader.u8(FLAGS_OFFSET)
        try:
            return BYTE_ORDERS[flags & 0b11]
        except KeyError:
            raise reader.error(0, ErrorKind.IS_A) from None

    @staticmethod
    def parse_header(reader: BoundedReader) -> int:
        """Validate the header and the table extents, and return the library count."""
        reader.tag(0, MAGIC)
        _, lib_count, string_table_size, *_ = reader.unpack(HEADER_FORMAT)

        size = len(reader)
        max_lib_count = saturating_sub(size, HEADER_SIZE) // ENTRY_SIZE
        if lib_count > max_lib_count:
            raise reader.error(0, ErrorKind.TOO_LARGE)

        max_string_table_size = saturating_sub(
            saturating_sub(size, HEADER_SIZE), saturating_mul(lib_count, ENTRY_SIZE)
        )
        if string_table_size > max_string_table_size:
            raise reader.error(0, ErrorKind.TOO_LARGE)

        min_size = saturating_add(
            saturating_add(HEADER_SIZE, saturating_mul(ENTRY_SIZE, lib_count)),
            string_table_size,
        )
        reader.require(min_size)
        return lib_count

    def iter(self):
        reader = self.reader(self.byte_order)
        entries = reader.window(HEADER_SIZE, saturating_mul(ENTRY_SIZE, self.lib_count))
        # key and value are offsets from the start of the file
        return RecordIterator(self, entries, reader, ENTRY_FORMAT)
