#!/usr/bin/env python3
"""
steps/python.py
===============

Tells the driver image where to find the primary Python file and its extra
Python files.
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

from typing import TYPE_CHECKING

from .. import constants
from ..bootstrap import add_env
from ..common.utils import resolve_file_path, resolve_file_paths
from .base import DriverConfigurationStep

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ..spec import KubernetesDriverSpec


class PythonStep(DriverConfigurationStep):
    """Sets `PYSPARK_PRIMARY` and `PYSPARK_FILES` on the driver container."""

    def __init__(
        self,
        primary_py_file: str,
        other_py_files: Sequence[str],
        files_download_path: str,
    ):
        self._primary_py_file = primary_py_file
        self._other_py_files = list(other_py_files)
        self._files_download_path = files_download_path

    def apply(self, spec: KubernetesDriverSpec) -> KubernetesDriverSpec:
        container = add_env(
            spec.driver_container,
            constants.ENV_PYSPARK_PRIMARY,
            resolve_file_path(self._primary_py_file, self._files_download_path),
        )
        if self._other_py_files:
            container = add_env(
                container,
                constants.ENV_PYSPARK_FILES,
                ",".join(resolve_file_paths(self._other_py_files, self._files_download_path)),
            )
        return spec.replace(driver_container=container)
