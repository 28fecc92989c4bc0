#!/usr/bin/env python3
"""
steps/dependencies.py
=====================

Resolves the submitted jars and files to their paths within the driver pod.
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

from typing import TYPE_CHECKING

from .. import config, constants, get_logger
from ..bootstrap import add_env
from ..common.utils import resolve_file_paths
from .base import DriverConfigurationStep

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ..spec import KubernetesDriverSpec

logger = get_logger(__name__)


class DependencyResolutionStep(DriverConfigurationStep):
    """
    Points `spark.jars` and `spark.files` to the resolved paths and puts the
    jars on the driver's classpath.

    Parameters
    ----------
    spark_jars : Sequence[str]
        The jar URIs, including the main application jar.
    spark_files : Sequence[str]
        The file URIs, including Python application files.
    jars_download_path : str
        Where remote jars are downloaded to.
    files_download_path : str
        Where remote files are downloaded to.
    """

    def __init__(
        self,
        spark_jars: Sequence[str],
        spark_files: Sequence[str],
        jars_download_path: str,
        files_download_path: str,
    ):
        self._spark_jars = list(spark_jars)
        self._spark_files = list(spark_files)
        self._jars_download_path = jars_download_path
        self._files_download_path = files_download_path

    def apply(self, spec: KubernetesDriverSpec) -> KubernetesDriverSpec:
        resolved_jars = resolve_file_paths(self._spark_jars, self._jars_download_path)
        resolved_files = resolve_file_paths(self._spark_files, self._files_download_path)
        logger.debug(f"Resolved jars {resolved_jars} and files {resolved_files}")

        driver_spark_conf = dict(spec.driver_spark_conf)
        if resolved_jars:
            driver_spark_conf[config.SPARK_JARS] = ",".join(resolved_jars)
        if resolved_files:
            driver_spark_conf[config.SPARK_FILES] = ",".join(resolved_files)

        driver_container = spec.driver_container
        if resolved_jars:
            driver_container = add_env(
                driver_container, constants.ENV_MOUNTED_CLASSPATH, ":".join(resolved_jars)
            )
        return spec.replace(driver_container=driver_container, driver_spark_conf=driver_spark_conf)
