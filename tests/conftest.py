# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

import dynamic_loader_cache
from dynamic_loader_cache import utils


@pytest.hookimpl
def pytest_report_header(config: pytest.Config):
    # ensuring the expected development package is being tested
    expected = Path(__file__).parent.parent / "dynamic_loader_cache" / "__init__.py"
    assert expected.samefile(dynamic_loader_cache.__file__)
    return f"dynamic_loader_cache.__file__: {dynamic_loader_cache.__file__}"


@pytest.fixture(scope="function")
def cache_file(tmp_path: Path) -> Callable[[bytes, str], Path]:
    """Write the given bytes to a cache file in a temporary folder."""

    def write(data: bytes, name: str = "ld.so.cache") -> Path:
        path = tmp_path / name
        path.write_bytes(data)
        return path

    return write


@pytest.fixture(scope="function")
def library_dir(tmp_path: Path) -> Path:
    """A search directory holding a few shared library files."""
    lib = tmp_path / "lib"
    lib.mkdir()
    for name in ("libfoo.so.1", "libbar.so.2", "libbaz.so.3.1"):
        (lib / name).write_bytes(b"\x7fELF")
    return lib


@pytest.fixture(autouse=True)
def fresh_deduplicator():
    utils.reset_deduplicator()
    yield
