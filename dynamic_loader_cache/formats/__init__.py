# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
from .base import CacheProvider, Entry, EntryResult, RecordIterator
from .glibc_ld_so_cache import GlibcLdSoCache
from .ld_elf_so_hints import LdElfSoHintsCache
from .ld_so_1_7 import LdSo17Cache
from .ld_so_hints import LdSoHintsCache

__all__ = [
    "CacheProvider",
    "Entry",
    "EntryResult",
    "RecordIterator",
    "GlibcLdSoCache",
    "LdElfSoHintsCache",
    "LdSo17Cache",
    "LdSoHintsCache",
]
