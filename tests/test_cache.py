# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
from __future__ import annotations

import logging

import pytest

from dynamic_loader_cache import (
    Cache,
    Config,
    Entry,
    GlibcLdSoCache,
    LdElfSoHintsCache,
    LdSo17Cache,
    LdSoHintsCache,
    OpenError,
)
from dynamic_loader_cache.cache import CACHE_PROVIDERS, MAX_CACHE_COUNT
from dynamic_loader_cache.reader import ByteOrder, DataModel

from .utils import (
    SAMPLE_ENTRIES,
    build_glibc_ld_so_cache,
    build_ld_elf_so_hints,
    build_ld_so_1_7,
    build_ld_so_hints,
)

HINTS_ENTRIES = [("libc.so.96.0", "/usr/lib/libc.so.96.0")]
LEGACY_ENTRIES = [("libold.so.1", "/lib/libold.so.1")]


@pytest.fixture
def installed_caches(cache_file, library_dir, tmp_path, monkeypatch):
    """Point every cache format at a sample file; the second ELF hints path is missing."""
    glibc = cache_file(build_glibc_ld_so_cache(SAMPLE_ENTRIES), "ld.so.cache")
    legacy = cache_file(build_ld_so_1_7(LEGACY_ENTRIES), "ld.so.cache.compat")
    elf_hints = cache_file(build_ld_elf_so_hints([library_dir]), "ld-elf.so.hints")
    hints = cache_file(
        build_ld_so_hints(HINTS_ENTRIES, DataModel.LP64, ByteOrder.LITTLE), "ld.so.hints"
    )
    monkeypatch.setattr(GlibcLdSoCache, "default_paths", (str(glibc),))
    monkeypatch.setattr(LdSo17Cache, "default_paths", (str(legacy),))
    monkeypatch.setattr(
        LdElfSoHintsCache,
        "default_paths",
        (str(elf_hints), str(tmp_path / "ld-elf32.so.hints")),
    )
    monkeypatch.setattr(LdSoHintsCache, "default_paths", (str(hints),))


def test_providers():
    assert set(CACHE_PROVIDERS.values()) == {
        GlibcLdSoCache,
        LdSo17Cache,
        LdElfSoHintsCache,
        LdSoHintsCache,
    }
    assert MAX_CACHE_COUNT == 5


@pytest.mark.parametrize(
    "platform,expected",
    [
        pytest.param(
            "linux",
            [GlibcLdSoCache, LdElfSoHintsCache, LdSoHintsCache, LdSo17Cache],
            id="linux",
        ),
        pytest.param(
            "freebsd14",
            [LdElfSoHintsCache, LdSoHintsCache, LdSo17Cache, GlibcLdSoCache],
            id="freebsd",
        ),
        pytest.param(
            "openbsd7",
            [LdSoHintsCache, LdElfSoHintsCache, LdSo17Cache, GlibcLdSoCache],
            id="openbsd",
        ),
        pytest.param(
            "netbsd10",
            [LdSoHintsCache, LdElfSoHintsCache, LdSo17Cache, GlibcLdSoCache],
            id="netbsd",
        ),
    ],
)
def test_load_probe_order(installed_caches, platform, expected):
    with Cache.load(platform=platform) as cache:
        assert [type(member) for member in cache.caches] == expected


def test_iter_chains_caches_in_load_order(installed_caches, library_dir):
    with Cache.load(Config(platform="linux")) as cache:
        items = list(cache.iter())

    assert all(isinstance(item, Entry) for item in items)
    glibc_end = len(SAMPLE_ENTRIES)
    hints_end = glibc_end + len(list(library_dir.iterdir()))
    assert items[:glibc_end] == [Entry(*pair) for pair in SAMPLE_ENTRIES]
    assert {item.file_name for item in items[glibc_end:hints_end]} == {
        path.name for path in library_dir.iterdir()
    }
    assert items[hints_end:] == [Entry(*pair) for pair in HINTS_ENTRIES + LEGACY_ENTRIES]


def test_iter_is_repeatable(installed_caches):
    with Cache.load(platform="freebsd14") as cache:
        assert list(cache.iter()) == list(cache.iter())
        assert list(cache) == list(cache.iter())


def test_unusable_caches_are_skipped(installed_caches, cache_file, monkeypatch):
    corrupt = cache_file(b"glibc-ld.so.cache1.1 but truncated", "corrupt.cache")
    monkeypatch.setattr(GlibcLdSoCache, "default_paths", (str(corrupt),))
    monkeypatch.setattr(LdSoHintsCache, "default_paths", ("/nonexistent/ld.so.hints",))
    with Cache.load(platform="linux") as cache:
        assert [type(member) for member in cache.caches] == [LdElfSoHintsCache, LdSo17Cache]


def test_nothing_to_load(tmp_path, monkeypatch):
    for provider in CACHE_PROVIDERS.values():
        monkeypatch.setattr(provider, "default_paths", (str(tmp_path / "missing"),))
    with Cache.load() as cache:
        assert cache.caches == ()
        assert list(cache.iter()) == []


def test_iter_obtains_every_member_iterator_first():
    obtained = []

    class Recording:
        def __init__(self, name):
            self.name = name

        def iter(self):
            obtained.append(self.name)
            return iter([Entry(self.name, f"/lib/{self.name}")])

    items = Cache([Recording("liba.so"), Recording("libb.so")]).iter()
    assert obtained == ["liba.so", "libb.so"]
    assert [item.file_name for item in items] == ["liba.so", "libb.so"]


def test_iter_propagates_member_failure():
    class Broken:
        def iter(self):
            raise OpenError("/var/run/ld.so.hints")

    with pytest.raises(OpenError):
        Cache([Broken()]).iter()


def test_capacity():
    with pytest.raises(ValueError):
        Cache([object()] * (MAX_CACHE_COUNT + 1))


def test_close(installed_caches):
    cache = Cache.load(platform="linux")
    with cache:
        assert not any(member.closed for member in cache.caches)
    assert all(member.closed for member in cache.caches)


def test_load_host():
    # whatever this host has, discovery itself never fails
    with Cache.load() as cache:
        assert len(cache.caches) <= MAX_CACHE_COUNT
        for item in cache.iter():
            if isinstance(item, Entry):
                assert item.file_name
                assert item.full_path


@pytest.fixture
def package_loggers():
    """Restore the levels Cache.load gives the package loggers."""
    names = ["dynamic_loader_cache", "dynamic_loader_cache.formats.base"]
    levels = {name: logging.getLogger(name).level for name in names}
    yield
    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)


def test_load_log_level_reaches_format_loggers(installed_caches, package_loggers, caplog):
    with Cache.load(platform="linux", log_level=logging.DEBUG):
        pass
    base = logging.getLogger("dynamic_loader_cache.formats.base")
    assert base.isEnabledFor(logging.DEBUG)
    assert any(
        record.name == base.name and record.message.startswith("loaded glibc-ld.so.cache1.1")
        for record in caplog.records
    )


def test_load_keeps_levels_from_log_config_file(installed_caches, package_loggers, tmp_path):
    log_config = tmp_path / "log_config.yaml"
    log_config.write_text(
        """
version: 1
disable_existing_loggers: false
loggers:
  dynamic_loader_cache.formats.base:
    level: DEBUG
"""
    )
    with Cache.load(platform="linux", log_config_file=str(log_config)):
        pass
    assert logging.getLogger("dynamic_loader_cache").level == logging.INFO
    assert logging.getLogger("dynamic_loader_cache.formats.base").level == logging.DEBUG
