# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""
Cache of the OpenBSD or NetBSD dynamic loader, ``ld.so.hints`` format.

Header fields are C ``long`` words, so their width follows the data model of
the loader that wrote the file; bucket fields are C ``int`` and are 32-bit
for both data models::

    struct hints_header {
        long hh_magic;               0x4c444869 "LDHi"
        long hh_version;             2
        long hh_hashtab;             offset of the hash table
        long hh_nbucket;             number of buckets in the hash table
        long hh_strtab;              offset of the string table
        long hh_strtab_sz;           size of the string table
        long hh_ehints;              end of hints (max offset in file)
        long hh_dirlist;             colon separated list of search dirs
    };

    struct hints_bucket {
        int hi_namex;                name index in the string table
        int hi_pathx;                path index in the string table
        int hi_dewey[MAXDEWEY];      version numbers
        int hi_ndewey;               number of version numbers
        int hi_next;                 next in this bucket
    };
"""
from __future__ import annotations

from ..config import LD_SO_HINTS
from ..reader import (
    USIZE_MAX,
    BoundedReader,
    ByteOrder,
    DataModel,
    ErrorKind,
    record_struct,
    saturating_add,
    saturating_mul,
    word_struct,
)
from .base import CacheProvider, RecordIterator

CACHE_FILE_PATH = "/var/run/ld.so.hints"

MAGIC = 0x4C444869
# Version 1 predates the string table and is not supported.
VERSION_2 = 2

# Maximum number of recognized shared object version numbers.
MAX_DEWEY = 8

HEADER_WORD_COUNT = 8

# name_index, path_index, then dewey[MAX_DEWEY], dewey_count and next are skipped
BUCKET_FORMAT = f"II{(MAX_DEWEY + 2) * 4}x"
BUCKET_SIZE = record_struct(ByteOrder.NATIVE, BUCKET_FORMAT).size

# Layouts tried in order: the first (magic, version) match wins.
LAYOUTS = (
    (DataModel.LP64, ByteOrder.LITTLE),
    (DataModel.LP64, ByteOrder.BIG),
    (DataModel.ILP32, ByteOrder.LITTLE),
    (DataModel.ILP32, ByteOrder.BIG),
)


class LdSoHintsCache(CacheProvider):
    """Cache of the OpenBSD or NetBSD dynamic loader (e.g. ``/var/run/ld.so.hints``)."""

    format_name = LD_SO_HINTS
    default_paths = (CACHE_FILE_PATH,)

    def __init__(
        self,
        path,
        map,
        data_model,
        byte_order,
        hash_table,
        bucket_count,
        string_table,
        string_table_size,
    ):
        super().__init__(path, map)
        self.data_model = data_model
        self.byte_order = byte_order
        self.hash_table = hash_table
        self.bucket_count = bucket_count
        self.string_table = string_table
        self.string_table_size = string_table_size

    @classmethod
    def parse(cls, reader):
        data_model, byte_order = cls.parse_byte_order(reader)
        hash_table, bucket_count, string_table, string_table_size = cls.parse_header(
            reader.with_byte_order(byte_order), data_model
        )
        return {
            "data_model": data_model,
            "byte_order": byte_order,
            "hash_table": hash_table,
            "bucket_count": bucket_count,
            "string_table": string_table,
            "string_table_size": string_table_size,
        }

    @staticmethod
    def parse_byte_order(reader: BoundedReader) -> tuple[DataModel, ByteOrder]:
        for data_model, byte_order in LAYOUTS:
            magic_version = word_struct(byte_order, data_model, 2).pack(MAGIC, VERSION_2)
            if reader.has_tag(0, magic_version):
                return data_model, byte_order
        raise reader.error(0, ErrorKind.TAG)

    @staticmethod
    def parse_header(reader: BoundedReader, data_model: DataModel) -> tuple[int, ...]:
        """Validate the header and return the hash and string table extents."""
        header = word_struct(reader.byte_order, data_model, HEADER_WORD_COUNT)
        (
            _,
            _,
            hash_table,
            bucket_count,
            string_table,
            string_table_size,
            end_of_hints,
            _dir_list,
        ) = reader.unpack(header)

        for value in (hash_table, bucket_count, string_table, string_table_size, end_of_hints):
            if value > USIZE_MAX:
                raise reader.error(0, ErrorKind.TOO_LARGE)

        hash_table_end = saturating_add(hash_table, saturating_mul(bucket_count, BUCKET_SIZE))
        string_table_end = saturating_add(string_table, string_table_size)
        reader.require(max(hash_table_end, string_table_end, end_of_hints))

        return hash_table, bucket_count, string_table, string_table_size

    def iter(self):
        reader = self.reader(self.byte_order)
        buckets = reader.window(self.hash_table, saturating_mul(self.bucket_count, BUCKET_SIZE))
        strings = reader.window(self.string_table, self.string_table_size)
        return RecordIterator(self, buckets, strings, BUCKET_FORMAT)
