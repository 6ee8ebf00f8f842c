#!/usr/bin/env python
# -*- coding: utf-8 -*-
#
"""The setup.py file."""

import os
import sys

from setuptools import find_packages, setup
from setuptools.command.install import install

VERSION = "0.1.0"

with open("README.md", "r") as fh:
    LONG_DESCRIPTION = fh.read()


class VerifyVersionCommand(install):
    """Custom command to verify that the git tag matches our VERSION."""

    def run(self):
        tag = os.getenv("CIRCLE_TAG")
        if tag != VERSION:
            info = f"The git tag: '{tag}' does not match the package ver: '{VERSION}'"
            sys.exit(info)


setup(
    name="lyric-async",
    description="An async client for connecting to the Honeywell Home (Lyric) API.",
    keywords=["honeywell", "lyric", "resideo", "thermostat"],
    install_requires=[val.strip() for val in open("requirements.txt") if val.strip()],
    extras_require={
        "test": [
            "aiohttp<3.14",  # aioresponses 0.7.9 is incompatible with aiohttp 3.14
            "aioresponses>=0.7.6",
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "pytest-freezer>=0.4.8",
        ],
    },
    long_description=LONG_DESCRIPTION,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src", exclude=["tests", "docs"]),
    entry_points={
        "console_scripts": ["lyric-client = lyric_cli.client:main"],
    },
    version=VERSION,
    license="Apache 2",
    python_requires=">=3.12",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3.12",
        "Topic :: Home Automation",
    ],
    cmdclass={
        "verify": VerifyVersionCommand,
    },
)
