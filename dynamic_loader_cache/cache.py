# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""
Reader of all the dynamic loader caches present on this host.
"""
from __future__ import annotations

import logging
from itertools import chain
from typing import Iterator

from .config import get_or_merge_config
from .exceptions import DynamicLoaderCacheError
from .formats import (
    CacheProvider,
    EntryResult,
    GlibcLdSoCache,
    LdElfSoHintsCache,
    LdSo17Cache,
    LdSoHintsCache,
)
from .utils import get_logger

CACHE_PROVIDERS: dict[str, type[CacheProvider]] = {
    provider.format_name: provider
    for provider in (GlibcLdSoCache, LdSo17Cache, LdElfSoHintsCache, LdSoHintsCache)
}

# One cache per standard location.
MAX_CACHE_COUNT = sum(len(provider.default_paths) for provider in CACHE_PROVIDERS.values())


class Cache:
    """Reader of the dynamic loader shared libraries caches."""

    def __init__(self, caches=()):
        caches = tuple(caches)
        if len(caches) > MAX_CACHE_COUNT:
            raise ValueError(
                f"at most {MAX_CACHE_COUNT} caches can be aggregated, got {len(caches)}"
            )
        self.caches = caches

    @classmethod
    def load(cls, config=None, **kwargs):
        """Load all dynamic loader caches supported and present on the system.

        Caches are probed in the order the platform's loader prefers them. A
        cache that is missing, unreadable or malformed is skipped.
        """
        config = get_or_merge_config(config, **kwargs)
        # the package logger carries the level and handlers for every module logger
        get_logger(
            __name__.split(".")[0],
            level=config.log_level,
            config_file=config.log_config_file,
        )
        log = get_logger(
            __name__, level=logging.NOTSET, add_stdout_stderr_handlers=False
        )
        caches = []
        for format_name in config.probe_order:
            provider = CACHE_PROVIDERS[format_name]
            for path in provider.default_paths:
                try:
                    cache = provider.load(path)
                except DynamicLoaderCacheError as e:
                    log.debug(f"skipping {format_name} cache {path}: {e}")
                    continue
                caches.append(cache)
        log.debug(f"loaded {len(caches)} dynamic loader caches for {config.platform}")
        return cls(caches)

    def iter(self) -> Iterator[EntryResult]:
        """Return an iterator over the entries of all loaded caches, in load order."""
        return chain.from_iterable([cache.iter() for cache in self.caches])

    def __iter__(self):
        return self.iter()

    def close(self):
        for cache in self.caches:
            cache.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def __repr__(self):
        return f"Cache(caches={list(self.caches)!r})"
