# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Iterator, NamedTuple, Union

from ..exceptions import DynamicLoaderCacheError, ParseError
from ..reader import BoundedReader, ByteOrder, record_struct
from ..utils import fs_decode, get_logger, map_file


class Entry(NamedTuple):
    #: File name of the shared library.
    file_name: str
    #: Absolute path of the shared library.
    full_path: str


#: What cache iterators produce: an entry, or the error that prevented decoding one.
EntryResult = Union[Entry, DynamicLoaderCacheError]


class CacheProvider(ABC):
    """One dynamic loader cache file, mapped read-only and validated.

    Subclasses decode their header in :meth:`parse`, which returns the keyword
    arguments of their constructor. Everything :meth:`parse` returns has been
    checked against the size of the mapping, so :meth:`iter` cannot read out
    of bounds.
    """

    #: Name of the format, one of the probe order names in :mod:`..config`.
    format_name: str = ""
    #: Standard locations of the cache file, in the order they are tried.
    default_paths: tuple[str, ...] = ()

    def __init__(self, path, map):
        self.path = path
        self._map = map

    @classmethod
    @abstractmethod
    def parse(cls, reader: BoundedReader) -> dict:
        ...

    @abstractmethod
    def iter(self) -> Iterator[EntryResult]:
        """Return an iterator over the entries of this cache.

        Decoding failures of individual entries are produced as items rather
        than raised, so one corrupt record does not hide the others.
        """

    @classmethod
    def load(cls, path: str | os.PathLike):
        """Create a cache that loads the specified cache file."""
        log = get_logger(
            __name__, level=logging.NOTSET, add_stdout_stderr_handlers=False
        )
        map = map_file(path)
        try:
            metadata = cls.parse(BoundedReader(map, path=path))
        except DynamicLoaderCacheError:
            map.close()
            raise
        log.debug(f"loaded {cls.format_name} cache {path}: {metadata}")
        return cls(path, map, **metadata)

    @classmethod
    def load_default(cls):
        """Create a cache that loads the first standard cache file that can be loaded."""
        error = None
        for path in cls.default_paths:
            try:
                return cls.load(path)
            except DynamicLoaderCacheError as e:
                error = e
        raise error

    def reader(self, byte_order=ByteOrder.NATIVE):
        return BoundedReader(self._map, byte_order=byte_order, path=self.path)

    def __iter__(self):
        return self.iter()

    def close(self):
        self._map.close()

    @property
    def closed(self):
        return self._map.closed

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def __repr__(self):
        return f"{type(self).__name__}(path={self.path!r})"


class RecordIterator:
    """Exact-length walk over a table of fixed-size records.

    `record_format` is a :mod:`struct` format decoding exactly two fields of a
    record, the offsets of the library name and of its path in `strings`; the
    rest of the record is skipped with pad bytes.
    """

    def __init__(self, cache, table, strings, record_format):
        # Holding the cache keeps its mapping alive for as long as we iterate.
        self._cache = cache
        self._table = table
        self._strings = strings
        self._record = record_struct(table.byte_order, record_format)
        self._offset = 0

    def __iter__(self):
        return self

    def __len__(self):
        return (len(self._table) - self._offset) // self._record.size

    def __next__(self) -> EntryResult:
        if len(self._table) - self._offset < self._record.size:
            raise StopIteration
        offset = self._offset
        self._offset += self._record.size
        try:
            key, value = self._table.unpack(self._record, offset)
        except ParseError as e:
            # Record boundaries are lost, nothing after this can be trusted.
            self._offset = len(self._table)
            return e
        try:
            return Entry(self._string(key), self._string(value))
        except DynamicLoaderCacheError as e:
            return e

    def _string(self, offset):
        return fs_decode(self._strings.cstring(offset), self._strings.path)
