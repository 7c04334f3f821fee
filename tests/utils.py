# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Builders of byte-exact cache files for the tests."""
from __future__ import annotations

import struct
from pathlib import Path

from dynamic_loader_cache.formats import (
    glibc_ld_so_cache,
    ld_elf_so_hints,
    ld_so_1_7,
    ld_so_hints,
)
from dynamic_loader_cache.reader import ByteOrder, DataModel

tests_path = Path(__file__).parent

SAMPLE_ENTRIES = [
    ("libc.so.6", "/lib/x86_64-linux-gnu/libc.so.6"),
    ("libm.so.6", "/lib/x86_64-linux-gnu/libm.so.6"),
    ("libz.so.1", "/usr/lib/x86_64-linux-gnu/libz.so.1"),
    ("ld-linux-x86-64.so.2", "/lib64/ld-linux-x86-64.so.2"),
]

GLIBC_FLAGS = {ByteOrder.NATIVE: 0b00, ByteOrder.LITTLE: 0b10, ByteOrder.BIG: 0b11}


def _string_table(entries, base=0):
    """Concatenated nul-terminated strings and the (key, value) offsets of each entry."""
    strings = bytearray()
    offsets = []
    for name, path in entries:
        key = base + len(strings)
        strings += name.encode() + b"\0"
        value = base + len(strings)
        strings += path.encode() + b"\0"
        offsets.append((key, value))
    return bytes(strings), offsets


def build_glibc_ld_so_cache(entries, byte_order=ByteOrder.LITTLE, flags=None):
    prefix = byte_order.value
    strings_start = glibc_ld_so_cache.HEADER_SIZE + glibc_ld_so_cache.ENTRY_SIZE * len(
        entries
    )
    strings, offsets = _string_table(entries, base=strings_start)
    # FLAG_ELF_LIBC6 | FLAG_X8664_LIB64
    records = b"".join(
        struct.pack(prefix + "IIIIQ", 0x0303, key, value, 0, 0) for key, value in offsets
    )
    if flags is None:
        flags = GLIBC_FLAGS[byte_order]
    header = struct.pack(
        prefix + glibc_ld_so_cache.HEADER_FORMAT,
        glibc_ld_so_cache.MAGIC,
        len(entries),
        len(strings),
        flags,
        0,
        0,
        0,
        0,
    )
    return header + records + strings


def build_ld_so_1_7(entries):
    strings, offsets = _string_table(entries)
    records = b"".join(struct.pack("=iII", 1, key, value) for key, value in offsets)
    header = struct.pack("=" + ld_so_1_7.HEADER_FORMAT, ld_so_1_7.MAGIC, len(entries))
    return header + records + strings


def build_ld_elf_so_hints(directories, byte_order=ByteOrder.LITTLE, version=1):
    prefix = byte_order.value
    dir_list = ":".join(str(directory) for directory in directories).encode()
    string_table = dir_list + b"\0"
    header = struct.pack(
        prefix + ld_elf_so_hints.HEADER_FORMAT,
        ld_elf_so_hints.MAGIC,
        version,
        ld_elf_so_hints.HEADER_SIZE,
        len(string_table),
        0,
        len(dir_list),
    )
    return header + string_table


def build_ld_so_hints(
    entries,
    data_model=DataModel.LP64,
    byte_order=ByteOrder.LITTLE,
    version=2,
    bucket_count=None,
):
    prefix = byte_order.value
    header_size = ld_so_hints.HEADER_WORD_COUNT * data_model.word_size
    hash_table = header_size
    string_table = hash_table + ld_so_hints.BUCKET_SIZE * len(entries)
    strings, offsets = _string_table(entries)
    dir_list = len(strings)
    strings += b"/usr/lib:/usr/local/lib\0"
    buckets = b"".join(
        struct.pack(prefix + "12i", key, value, 1, 2, 0, 0, 0, 0, 0, 0, 2, -1)
        for key, value in offsets
    )
    header = struct.pack(
        f"{prefix}{ld_so_hints.HEADER_WORD_COUNT}{data_model.value}",
        ld_so_hints.MAGIC,
        version,
        hash_table,
        len(entries) if bucket_count is None else bucket_count,
        string_table,
        len(strings),
        string_table + len(strings),
        dir_list,
    )
    return header + buckets + strings
