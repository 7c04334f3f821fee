#!/usr/bin/env python
import re
from pathlib import Path

from setuptools import setup

here = Path(__file__).parent
version = re.search(
    r'^__version__ = "(.+)"$',
    (here / "dynamic_loader_cache" / "__version__.py").read_text(),
    re.MULTILINE,
).group(1)

deps = ["pyyaml"]

setup(
    name="dynamic-loader-cache",
    version=version,
    author="Anaconda, Inc.",
    license="BSD-3-Clause",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Operating System :: POSIX",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.8",
    description="Reader of the dynamic loader shared libraries caches",
    long_description=(here / "README.rst").read_text(),
    packages=["dynamic_loader_cache", "dynamic_loader_cache.formats"],
    install_requires=deps,
    extras_require={"test": ["pytest", "hypothesis"]},
    zip_safe=False,
)
