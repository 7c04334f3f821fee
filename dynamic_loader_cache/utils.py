# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
import logging
import logging.config
import mmap
import os
import sys
from os.path import abspath, expanduser, expandvars

import yaml

from .exceptions import (
    EncodingError,
    FileIsEmptyError,
    MapFileError,
    OpenError,
    ReadMetadataError,
)

on_win = sys.platform == "win32"


class LessThanFilter(logging.Filter):
    def __init__(self, exclusive_maximum, name=""):
        super().__init__(name)
        self.max_level = exclusive_maximum

    def filter(self, record):
        # non-zero return means we log this message
        return 1 if record.levelno < self.max_level else 0


class GreaterThanFilter(logging.Filter):
    def __init__(self, exclusive_minimum, name=""):
        super().__init__(name)
        self.min_level = exclusive_minimum

    def filter(self, record):
        # non-zero return means we log this message
        return 1 if record.levelno > self.min_level else 0


# unclutter logs - show messages only once
class DuplicateFilter(logging.Filter):
    def __init__(self):
        self.msgs = set()

    def filter(self, record):
        log = record.msg not in self.msgs
        self.msgs.add(record.msg)
        return int(log)


dedupe_filter = DuplicateFilter()
info_debug_stdout_filter = LessThanFilter(logging.WARNING)
warning_error_stderr_filter = GreaterThanFilter(logging.INFO)
level_formatter = logging.Formatter("%(levelname)s: %(message)s")


def reset_deduplicator():
    """Most of the time, we want the deduplication.  There are some cases (tests especially)
    where we want to be able to control the duplication."""
    global dedupe_filter
    dedupe_filter = DuplicateFilter()


def get_logger(
    name,
    level=logging.INFO,
    dedupe=True,
    add_stdout_stderr_handlers=True,
    config_file=None,
):
    if config_file:
        config_file = abspath(expanduser(expandvars(config_file)))
    # by loading config file here, and then only adding handlers later, people
    # should be able to override our logger settings here.
    if config_file:
        with open(config_file) as f:
            config_dict = yaml.safe_load(f)
        logging.config.dictConfig(config_dict)
        level = config_dict.get("loggers", {}).get(name, {}).get("level", level)
    log = logging.getLogger(name)
    # NOTSET keeps whatever level the logger has, so it inherits from its parent
    # unless a log config file gave it one
    if level != logging.NOTSET:
        log.setLevel(level)
    if dedupe:
        log.addFilter(dedupe_filter)

    # these are defaults.  They can be overridden by configuring a log config yaml file.
    top_pkg = name.split(".")[0]
    if top_pkg == "dynamic_loader_cache":
        # we don't want propagation in applications, but we do want it in tests
        # this is a pytest limitation: https://github.com/pytest-dev/pytest/issues/3697
        logging.getLogger(top_pkg).propagate = "PYTEST_CURRENT_TEST" in os.environ
    if add_stdout_stderr_handlers and not log.handlers:
        stdout_handler = logging.StreamHandler(sys.stdout)
        stderr_handler = logging.StreamHandler(sys.stderr)
        stdout_handler.addFilter(info_debug_stdout_filter)
        stderr_handler.addFilter(warning_error_stderr_filter)
        stderr_handler.setFormatter(level_formatter)
        stdout_handler.setLevel(level)
        stderr_handler.setLevel(level)
        log.addHandler(stdout_handler)
        log.addHandler(stderr_handler)
    return log


def mmap_mmap(fileno, length, tagname=None, access=mmap.ACCESS_READ, offset=0):
    """
    Hides the differences between mmap.mmap on Windows and Unix.
    Windows has `tagname`, Unix does not.
    Both get a read-only mapping unless `access` says otherwise.
    """
    if on_win:
        return mmap.mmap(fileno, length, tagname=tagname, access=access, offset=offset)
    else:
        return mmap.mmap(fileno, length, access=access, offset=offset)


def map_file(path):
    """Map the whole of `path` read-only.

    The file descriptor is closed before returning; the mapping stays valid
    until it is closed or garbage collected.
    """
    try:
        fi = open(path, "rb")
    except OSError as e:
        raise OpenError(path, e) from e
    with fi:
        try:
            size = os.fstat(fi.fileno()).st_size
        except OSError as e:
            raise ReadMetadataError(path, e) from e
        if size == 0:
            raise FileIsEmptyError(path)
        try:
            return mmap_mmap(fi.fileno(), size)
        except (OSError, ValueError, OverflowError) as e:
            raise MapFileError(path, e) from e


def fs_decode(raw, path=None):
    """Decode `raw` bytes with the file system encoding, as os.fsdecode does."""
    try:
        return os.fsdecode(raw)
    except UnicodeDecodeError as e:
        raise EncodingError(path, raw, e) from e
