#!/usr/bin/env python3
"""
common/utils.py
===============

Implements utility functions for dependency URIs and resource quantities.
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

# imports
import posixpath
import re
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from .exceptions import ConfigurationValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable

_MEMORY_UNITS = {"k": 1 / 1024, "m": 1, "g": 1024, "t": 1024 * 1024}


def uri_scheme(uri: str) -> str:
    """Scheme of `uri`, `'file'` for plain paths."""
    return urlparse(uri).scheme or "file"


def is_local_uri(uri: str) -> bool:
    """Whether `uri` points to a file already present in the container image."""
    return uri_scheme(uri) == "local"


def file_name(uri: str) -> str:
    return posixpath.basename(urlparse(uri).path)


def resolve_file_path(uri: str, download_path: str) -> str:
    """
    Path of a dependency within the driver container.

    `local://` URIs are already present in the image, anything else is
    downloaded to `download_path`.
    """
    if is_local_uri(uri):
        return urlparse(uri).path
    return f"{download_path.rstrip('/')}/{file_name(uri)}"


def resolve_file_paths(uris: Iterable[str], download_path: str) -> list[str]:
    return [resolve_file_path(uri, download_path) for uri in uris]


def memory_string_to_mib(memory: str) -> int:
    """
    Convert a JVM style memory string to MiB.

    Parameters
    ----------
    memory : str
        e.g. `'512m'`, `'2g'`, or `'1024'` (MiB).
    """
    match = re.fullmatch(r"\s*(\d+)\s*([kmgt])?b?\s*", memory.lower())
    if not match:
        raise ConfigurationValidationError(f"Invalid memory string '{memory}'")
    return int(int(match.group(1)) * _MEMORY_UNITS[match.group(2) or "m"])
