#!/usr/bin/env python3
"""
steps/basedriver.py
===================

The first step of every submission, setting up the driver pod and its main
container.
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

import copy
from typing import TYPE_CHECKING

from kubernetes import client

from .. import config, constants, get_logger
from ..common.utils import memory_string_to_mib
from .base import DriverConfigurationStep

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from ..spec import KubernetesDriverSpec

logger = get_logger(__name__)


class BaseDriverConfigurationStep(DriverConfigurationStep):
    """
    Sets name, labels and annotations of the driver pod and image, environment
    and resources of the driver container.

    Parameters
    ----------
    kubernetes_app_id : str
        The application id.
    resource_name_prefix : str
        Prefix of all Kubernetes resource names of the submission.
    driver_labels : Mapping[str, str]
        All labels of the driver pod, including the reserved ones.
    image_pull_policy : str
        Pull policy of the driver image.
    app_name : str
        The Spark application name.
    main_class : str
        The main class of the application.
    app_args : Sequence[str]
        The application arguments.
    conf : Mapping[str, str]
        The submission properties.
    """

    def __init__(  # noqa: PLR0913
        self,
        kubernetes_app_id: str,
        resource_name_prefix: str,
        driver_labels: Mapping[str, str],
        image_pull_policy: str,
        app_name: str,
        main_class: str,
        app_args: Sequence[str],
        conf: Mapping[str, str],
    ):
        self._kubernetes_app_id = kubernetes_app_id
        self._resource_name_prefix = resource_name_prefix
        self._driver_labels = dict(driver_labels)
        self._image_pull_policy = image_pull_policy
        self._app_name = app_name
        self._main_class = main_class
        self._app_args = list(app_args)

        self._driver_pod_name = f"{resource_name_prefix}-driver"
        self._driver_image = conf.get(config.DRIVER_DOCKER_IMAGE, constants.DEFAULT_DRIVER_IMAGE)
        self._driver_annotations = config.prefixed(conf, config.DRIVER_ANNOTATION_PREFIX)
        self._driver_env = config.prefixed(conf, config.DRIVER_ENV_PREFIX)
        self._driver_cpu_cores = conf.get(config.DRIVER_CORES, "1")
        self._driver_limit_cores = conf.get(config.DRIVER_LIMIT_CORES)
        self._driver_memory = conf.get(config.DRIVER_MEMORY, "1g")

        _memory_mib = memory_string_to_mib(self._driver_memory)
        _overhead = conf.get(config.DRIVER_MEMORY_OVERHEAD)
        _overhead_mib = (
            memory_string_to_mib(_overhead)
            if _overhead
            else max(
                int(constants.MEMORY_OVERHEAD_FACTOR * _memory_mib),
                constants.MEMORY_OVERHEAD_MIN_MIB,
            )
        )
        self._driver_memory_with_overhead = f"{_memory_mib + _overhead_mib}Mi"

    def _driver_container(self, original: client.V1Container) -> client.V1Container:
        container = copy.deepcopy(original)
        container.name = constants.DRIVER_CONTAINER_NAME
        container.image = self._driver_image
        container.image_pull_policy = self._image_pull_policy

        env = [client.V1EnvVar(name=name, value=value) for name, value in self._driver_env.items()]
        env += [
            client.V1EnvVar(name=constants.ENV_DRIVER_MEMORY, value=self._driver_memory),
            client.V1EnvVar(name=constants.ENV_DRIVER_MAIN_CLASS, value=self._main_class),
            client.V1EnvVar(name=constants.ENV_DRIVER_ARGS, value=" ".join(self._app_args)),
        ]
        container.env = [*(container.env or []), *env]

        limits = {"memory": self._driver_memory_with_overhead}
        if self._driver_limit_cores:
            limits["cpu"] = self._driver_limit_cores
        container.resources = client.V1ResourceRequirements(
            requests={"cpu": self._driver_cpu_cores, "memory": self._driver_memory_with_overhead},
            limits=limits,
        )
        return container

    def _driver_pod(self, original: client.V1Pod) -> client.V1Pod:
        pod = copy.deepcopy(original)
        pod.metadata.name = self._driver_pod_name
        pod.metadata.labels = {**(pod.metadata.labels or {}), **self._driver_labels}
        pod.metadata.annotations = {
            **(pod.metadata.annotations or {}),
            **self._driver_annotations,
        } or None
        pod.spec.restart_policy = "Never"
        return pod

    def apply(self, spec: KubernetesDriverSpec) -> KubernetesDriverSpec:
        logger.debug(f"Configuring driver pod '{self._driver_pod_name}'")
        driver_spark_conf = dict(spec.driver_spark_conf)
        driver_spark_conf.setdefault(config.SPARK_APP_NAME, self._app_name)
        driver_spark_conf[config.SPARK_APP_ID] = self._kubernetes_app_id
        driver_spark_conf[config.DRIVER_POD_NAME] = self._driver_pod_name
        driver_spark_conf[config.EXECUTOR_POD_NAME_PREFIX] = self._resource_name_prefix

        return spec.replace(
            driver_pod=self._driver_pod(spec.driver_pod),
            driver_container=self._driver_container(spec.driver_container),
            driver_spark_conf=driver_spark_conf,
        )
