# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Reader of the dynamic loader shared libraries caches."""
from .__version__ import __version__
from .cache import Cache
from .config import Config
from .exceptions import (
    DynamicLoaderCacheError,
    EncodingError,
    FileIsEmptyError,
    MapFileError,
    OffsetIsInvalidError,
    OpenError,
    ParseError,
    ReadDirError,
    ReadMetadataError,
    StringNotTerminatedError,
)
from .formats import (
    Entry,
    GlibcLdSoCache,
    LdElfSoHintsCache,
    LdSo17Cache,
    LdSoHintsCache,
)

__all__ = [
    "__version__",
    "Cache",
    "Config",
    "Entry",
    "GlibcLdSoCache",
    "LdElfSoHintsCache",
    "LdSo17Cache",
    "LdSoHintsCache",
    "DynamicLoaderCacheError",
    "EncodingError",
    "FileIsEmptyError",
    "MapFileError",
    "OffsetIsInvalidError",
    "OpenError",
    "ParseError",
    "ReadDirError",
    "ReadMetadataError",
    "StringNotTerminatedError",
]
