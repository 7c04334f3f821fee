# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
from __future__ import annotations

import os


class DynamicLoaderCacheError(Exception):
    pass


class _PathError(DynamicLoaderCacheError):
    description = "operation failed"

    def __init__(self, path: str | os.PathLike | None, error: Exception | None = None):
        self.path = path
        self.error = error
        self.msg = f"{self.description}. Path: {path}"
        if error is not None:
            self.msg += f"\n{error}"
        super().__init__(self.msg)


class ReadDirError(_PathError):
    description = "failed to read directory"


class OpenError(_PathError):
    description = "failed to open file"


class MapFileError(_PathError):
    description = "failed to map file"


class ReadMetadataError(_PathError):
    description = "failed to read metadata"


class FileIsEmptyError(_PathError):
    description = "file is empty"


class ParseError(DynamicLoaderCacheError):
    """Structural failure while decoding a cache file.

    ``offset`` is the absolute byte position in the source buffer where the
    failing read started, ``kind`` is a :class:`~dynamic_loader_cache.reader.ErrorKind`.
    """

    def __init__(self, path, offset, kind):
        self.path = path
        self.offset = offset
        self.kind = kind
        self.msg = f"parsing failed at offset {offset} ({kind}). Path: {path}"
        super().__init__(self.msg)


class OffsetIsInvalidError(DynamicLoaderCacheError):
    def __init__(self, path, offset):
        self.path = path
        self.offset = offset
        self.msg = f"offset is invalid: {offset}. Path: {path}"
        super().__init__(self.msg)


class StringNotTerminatedError(DynamicLoaderCacheError):
    def __init__(self, path, offset):
        self.path = path
        self.offset = offset
        self.msg = f"string at offset {offset} is not nul-terminated. Path: {path}"
        super().__init__(self.msg)


class EncodingError(DynamicLoaderCacheError):
    def __init__(self, path, raw, error):
        self.path = path
        self.raw = raw
        self.error = error
        self.msg = f"{raw!r} is not valid in the file system encoding. Path: {path}"
        super().__init__(self.msg)
