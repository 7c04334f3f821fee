# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""
Cache of the FreeBSD dynamic loader, ``ld-elf.so.hints`` format.

The hints file only records the library search directories; entries come
from listing those directories::

    struct elfhints_hdr {
        u_int32_t magic;             0x746e6845 "Ehnt", in the writer's byte order
        u_int32_t version;           1
        u_int32_t strtab;            offset of the string table in the file
        u_int32_t strsize;           size of the string table
        u_int32_t dirlist;           offset of the directory list in the string table
        u_int32_t dirlistlen;        strlen(dirlist)
        u_int32_t spare[26];
    };
"""
from __future__ import annotations

import logging
import os
import struct

from ..config import LD_ELF_SO_HINTS
from ..exceptions import EncodingError, ReadDirError
from ..reader import (
    U32_MAX,
    BoundedReader,
    ByteOrder,
    ErrorKind,
    record_struct,
    saturating_add,
    saturating_sub,
)
from ..utils import fs_decode, get_logger
from .base import CacheProvider, Entry

CACHE_FILE_PATHS = ("/var/run/ld-elf.so.hints", "/var/run/ld-elf32.so.hints")

MAGIC = 0x746E6845
VERSION = 1

# magic, version, string_table_offset, string_table_size, dir_list_offset,
# dir_list_size, spare
HEADER_FORMAT = "6I104x"
HEADER_SIZE = record_struct(ByteOrder.NATIVE, HEADER_FORMAT).size
VERSION_OFFSET = 4


class LdElfSoHintsCache(CacheProvider):
    """Cache of the FreeBSD dynamic loader (e.g. ``/var/run/ld-elf.so.hints``)."""

    format_name = LD_ELF_SO_HINTS
    default_paths = CACHE_FILE_PATHS

    def __init__(self, path, map, byte_order, dir_list_offset, dir_list_size):
        super().__init__(path, map)
        self.byte_order = byte_order
        self.dir_list_offset = dir_list_offset
        self.dir_list_size = dir_list_size

    @classmethod
    def parse(cls, reader):
        byte_order = cls.parse_byte_order(reader)
        dir_list_offset, dir_list_size = cls.parse_header(reader.with_byte_order(byte_order))
        return {
            "byte_order": byte_order,
            "dir_list_offset": dir_list_offset,
            "dir_list_size": dir_list_size,
        }

    @staticmethod
    def parse_byte_order(reader: BoundedReader) -> ByteOrder:
        for byte_order in (ByteOrder.LITTLE, ByteOrder.BIG):
            if reader.has_tag(0, struct.pack(byte_order.value + "I", MAGIC)):
                return byte_order
        raise reader.error(0, ErrorKind.TAG)

    @staticmethod
    def parse_header(reader: BoundedReader) -> tuple[int, int]:
        """Validate the header and return the directory list extent in the file."""
        reader.tag(VERSION_OFFSET, struct.pack(reader.byte_order.value + "I", VERSION))
        (
            _,
            _,
            string_table_offset,
            string_table_size,
            dir_list_offset,
            dir_list_size,
        ) = reader.unpack(HEADER_FORMAT)

        if string_table_size > saturating_sub(U32_MAX, string_table_offset):
            raise reader.error(0, ErrorKind.TOO_LARGE)

        if dir_list_offset > saturating_sub(U32_MAX, string_table_offset):
            raise reader.error(0, ErrorKind.TOO_LARGE)

        max_dir_list_size = saturating_sub(
            saturating_sub(saturating_sub(U32_MAX, string_table_offset), dir_list_offset), 1
        )
        if dir_list_size > max_dir_list_size:
            raise reader.error(0, ErrorKind.TOO_LARGE)

        # the directory list is followed by its nul terminator
        min_size = max(
            saturating_add(string_table_offset, string_table_size, U32_MAX),
            saturating_add(
                saturating_add(
                    saturating_add(string_table_offset, dir_list_offset, U32_MAX),
                    dir_list_size,
                    U32_MAX,
                ),
                1,
                U32_MAX,
            ),
        )
        reader.require(min_size)

        return string_table_offset + dir_list_offset, dir_list_size

    def search_directories(self):
        """The raw, colon separated, directory list of the hints file, split."""
        raw = self.reader(self.byte_order).bytes_at(self.dir_list_offset, self.dir_list_size)
        return raw.split(b":")

    def iter(self):
        return self._iter_directories(self.search_directories())

    def _iter_directories(self, directories):
        log = get_logger(
            __name__, level=logging.NOTSET, add_stdout_stderr_handlers=False
        )
        for raw in directories:
            if not raw:
                continue
            try:
                directory = fs_decode(raw, self.path)
            except EncodingError as e:
                log.debug(f"skipping search directory: {e}")
                continue
            try:
                it = os.scandir(directory)
            except OSError as e:
                log.debug(f"skipping search directory {directory}: {e}")
                continue
            with it:
                while True:
                    try:
                        dir_entry = next(it)
                    except StopIteration:
                        break
                    except OSError as e:
                        yield ReadDirError(directory, e)
                        break
                    yield Entry(dir_entry.name, dir_entry.path)
