#!/usr/bin/env python3
"""
submission.py
=============

The immutable input of a submission: where to run, what to run and with which
Spark properties.
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

import time

import msgspec

from .config import SPARK_FILES, SPARK_JARS, split_list
from .constants import NO_RESOURCE


class JavaMainAppResource(msgspec.Struct, frozen=True, tag="java"):
    """A jar holding the main class."""

    resource: str


class PythonMainAppResource(msgspec.Struct, frozen=True, tag="python"):
    """A Python script run by PySpark."""

    resource: str


MainAppResource = JavaMainAppResource | PythonMainAppResource


def _now_millis() -> int:
    return time.time_ns() // 1_000_000


class SubmissionContext(msgspec.Struct, frozen=True, kw_only=True):
    """
    Everything known about a submission before any step runs.

    Parameters
    ----------
    namespace : str
        The Kubernetes namespace to deploy to.
    kubernetes_app_id : str
        The generated application id, used for the `spark-app-id` label.
    app_name : str
        The Spark application name.
    main_class : str
        The main class, for Python applications the PySpark runner.
    main_app_resource : MainAppResource
        The jar or script of the application.
    app_args : tuple[str, ...]
        The application arguments.
    additional_python_files : tuple[str, ...]
        Extra Python files of a Python application.
    conf : dict[str, str]
        The Spark properties of the submission.
    launch_time : int
        The submission time in milliseconds since the epoch.
    """

    namespace: str
    kubernetes_app_id: str
    app_name: str
    main_class: str
    main_app_resource: MainAppResource
    app_args: tuple[str, ...] = ()
    additional_python_files: tuple[str, ...] = ()
    conf: dict[str, str] = msgspec.field(default_factory=dict)
    launch_time: int = msgspec.field(default_factory=_now_millis)

    @property
    def resource_name_prefix(self) -> str:
        """
        Prefix of all Kubernetes resource names of the submission.

        Derived from the application name so resources can be matched to the
        application by eye. The app id is used for bookkeeping labels instead,
        as label values are much more restricted than names.
        """
        return f"{self.app_name}-{self.launch_time}".lower().replace(".", "-")

    @property
    def spark_jars(self) -> list[str]:
        """`spark.jars` plus the main jar of a Java application."""
        jars = split_list(self.conf.get(SPARK_JARS))
        if (
            isinstance(self.main_app_resource, JavaMainAppResource)
            and self.main_app_resource.resource != NO_RESOURCE
        ):
            jars.append(self.main_app_resource.resource)
        return jars

    @property
    def spark_files(self) -> list[str]:
        """`spark.files` plus the main script and extra files of a Python application."""
        files = split_list(self.conf.get(SPARK_FILES))
        if (
            isinstance(self.main_app_resource, PythonMainAppResource)
            and self.main_app_resource.resource != NO_RESOURCE
        ):
            files.append(self.main_app_resource.resource)
        return files + list(self.additional_python_files)
