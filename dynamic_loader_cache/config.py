# Copyright (C) 2014 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""
Module to store dynamic loader cache settings.
"""
import copy
import logging
import re
import sys
from collections import namedtuple

from .utils import get_logger

# Names of the supported cache formats, as used in probe orders.
GLIBC_LD_SO_CACHE_1_1 = "glibc-ld.so.cache1.1"
LD_SO_1_7_0 = "ld.so-1.7.0"
LD_ELF_SO_HINTS = "ld-elf.so.hints"
LD_SO_HINTS = "ld.so.hints"

# The native loader's own format goes first.
PROBE_ORDERS = {
    "freebsd": (LD_ELF_SO_HINTS, LD_SO_HINTS, LD_SO_1_7_0, GLIBC_LD_SO_CACHE_1_1),
    "openbsd": (LD_SO_HINTS, LD_ELF_SO_HINTS, LD_SO_1_7_0, GLIBC_LD_SO_CACHE_1_1),
    "netbsd": (LD_SO_HINTS, LD_ELF_SO_HINTS, LD_SO_1_7_0, GLIBC_LD_SO_CACHE_1_1),
}
DEFAULT_PROBE_ORDER = (
    GLIBC_LD_SO_CACHE_1_1,
    LD_ELF_SO_HINTS,
    LD_SO_HINTS,
    LD_SO_1_7_0,
)

Setting = namedtuple("ConfigSetting", "name, default")


def _get_default_settings():
    return [
        Setting("_platform", None),
        Setting("log_config_file", None),
        Setting("log_level", logging.INFO),
    ]


class Config:
    def __init__(self, **kwargs):
        super().__init__()
        self.set_keys(**kwargs)

    def _set_attribute_from_kwargs(self, kwargs, attr, default):
        value = kwargs.get(
            attr, getattr(self, attr) if hasattr(self, attr) else default
        )
        setattr(self, attr, value)
        if attr in kwargs:
            del kwargs[attr]

    def set_keys(self, **kwargs):
        platform = kwargs.pop("platform", None)
        if platform:
            self._platform = platform

        # handle known values better than unknown (allow defaults)
        for value in _get_default_settings():
            self._set_attribute_from_kwargs(kwargs, value.name, value.default)

        # dangle remaining keyword arguments as attributes on this class
        for name, value in kwargs.items():
            setattr(self, name, value)

    @property
    def platform(self):
        """Always the native OS (``sys.platform``), except when pretending to be some
        other platform"""
        return self._platform or sys.platform

    @platform.setter
    def platform(self, value):
        log = get_logger(__name__)
        log.warning(
            "Setting platform. This is only useful when pretending to be on another "
            "platform, such as for probing caches in the order a foreign loader uses. "
            "I trust that you know what you're doing."
        )
        self._platform = value

    @property
    def os_family(self):
        """``sys.platform`` without its release suffix, e.g. ``freebsd`` for ``freebsd14``."""
        match = re.match(r"[a-z]+", self.platform)
        return match.group(0) if match else self.platform

    @property
    def probe_order(self):
        return PROBE_ORDERS.get(self.os_family, DEFAULT_PROBE_ORDER)

    def copy(self):
        new = copy.copy(self)
        return new

    def __repr__(self):
        return (
            f"Config(platform={self.platform!r}, log_config_file={self.log_config_file!r}, "
            f"log_level={self.log_level!r})"
        )


def get_or_merge_config(config, **kwargs):
    """Always returns a new object - never changes the config that might be passed in."""
    if not config:
        config = Config()
    else:
        # decouple this config from whatever was fed in.  People must change config by
        #    accessing and changing this attribute.
        config = config.copy()
    if kwargs:
        config.set_keys(**kwargs)
    return config
