#!/usr/bin/env python3
"""
steps/initcontainer.py
======================

Adds an init-container downloading the remote jars and files of a submission
before the driver starts.
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

import copy
from typing import TYPE_CHECKING

from kubernetes import client

from .. import config, constants, get_logger
from ..bootstrap import add_volume, add_volume_mount
from ..common.utils import is_local_uri
from .base import DriverConfigurationStep

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from ..spec import KubernetesDriverSpec

logger = get_logger(__name__)


def _to_properties(properties: Mapping[str, str]) -> str:
    return "".join(f"{key}={value}\n" for key, value in sorted(properties.items()))


class InitContainerBootstrapStep(DriverConfigurationStep):
    """
    Downloads the non-local dependencies of a submission in an init-container.

    The init-container reads its instructions from a properties file shipped as
    config map. Jars and files are downloaded into `emptyDir` volumes shared
    with the driver container.

    Parameters
    ----------
    spark_jars : Sequence[str]
        The jar URIs of the submission.
    spark_files : Sequence[str]
        The file URIs of the submission.
    jars_download_path : str
        Where jars are downloaded to.
    files_download_path : str
        Where files are downloaded to.
    image_pull_policy : str
        The pull policy of the init-container image.
    resource_name_prefix : str
        Prefix of all Kubernetes resource names of the submission.
    conf : Mapping[str, str]
        The submission properties.
    """

    def __init__(  # noqa: PLR0913
        self,
        spark_jars: Sequence[str],
        spark_files: Sequence[str],
        jars_download_path: str,
        files_download_path: str,
        image_pull_policy: str,
        resource_name_prefix: str,
        conf: Mapping[str, str],
    ):
        self._remote_jars = [uri for uri in spark_jars if not is_local_uri(uri)]
        self._remote_files = [uri for uri in spark_files if not is_local_uri(uri)]
        self._jars_download_path = jars_download_path
        self._files_download_path = files_download_path
        self._image_pull_policy = image_pull_policy
        self._image = conf.get(config.INIT_CONTAINER_IMAGE, constants.DEFAULT_INIT_CONTAINER_IMAGE)
        self._config_map_name = f"{resource_name_prefix}-init-config"
        self._config_map_key = constants.INIT_CONTAINER_CONFIG_MAP_KEY

    @property
    def properties(self) -> dict[str, str]:
        """Properties read by the init-container."""
        properties = {
            config.JARS_DOWNLOAD_LOCATION: self._jars_download_path,
            config.FILES_DOWNLOAD_LOCATION: self._files_download_path,
        }
        if self._remote_jars:
            properties[config.INIT_CONTAINER_REMOTE_JARS] = ",".join(self._remote_jars)
        if self._remote_files:
            properties[config.INIT_CONTAINER_REMOTE_FILES] = ",".join(self._remote_files)
        return properties

    def _download_mounts(self, container: client.V1Container) -> client.V1Container:
        container = add_volume_mount(
            container, constants.INIT_CONTAINER_DOWNLOAD_JARS_VOLUME_NAME, self._jars_download_path
        )
        return add_volume_mount(
            container, constants.INIT_CONTAINER_DOWNLOAD_FILES_VOLUME_NAME, self._files_download_path
        )

    def _init_container(self) -> client.V1Container:
        container = client.V1Container(
            name=constants.INIT_CONTAINER_NAME,
            image=self._image,
            image_pull_policy=self._image_pull_policy,
            args=[
                f"{constants.INIT_CONTAINER_PROPERTIES_FILE_DIR}/"
                f"{constants.INIT_CONTAINER_PROPERTIES_FILE_NAME}"
            ],
        )
        container = add_volume_mount(
            container,
            constants.INIT_CONTAINER_PROPERTIES_FILE_VOLUME,
            constants.INIT_CONTAINER_PROPERTIES_FILE_DIR,
        )
        return self._download_mounts(container)

    def _driver_pod(self, original: client.V1Pod) -> client.V1Pod:
        pod = add_volume(
            original,
            client.V1Volume(
                name=constants.INIT_CONTAINER_PROPERTIES_FILE_VOLUME,
                config_map=client.V1ConfigMapVolumeSource(
                    name=self._config_map_name,
                    items=[
                        client.V1KeyToPath(
                            key=self._config_map_key,
                            path=constants.INIT_CONTAINER_PROPERTIES_FILE_NAME,
                        )
                    ],
                ),
            ),
        )
        for name in (
            constants.INIT_CONTAINER_DOWNLOAD_JARS_VOLUME_NAME,
            constants.INIT_CONTAINER_DOWNLOAD_FILES_VOLUME_NAME,
        ):
            pod = add_volume(
                pod, client.V1Volume(name=name, empty_dir=client.V1EmptyDirVolumeSource())
            )
        pod = copy.deepcopy(pod)
        pod.spec.init_containers = [*(pod.spec.init_containers or []), self._init_container()]
        return pod

    def apply(self, spec: KubernetesDriverSpec) -> KubernetesDriverSpec:
        logger.debug(
            f"Downloading jars {self._remote_jars} and files {self._remote_files} "
            f"in init-container '{constants.INIT_CONTAINER_NAME}'"
        )
        config_map = client.V1ConfigMap(
            api_version="v1",
            kind="ConfigMap",
            metadata=client.V1ObjectMeta(name=self._config_map_name),
            data={self._config_map_key: _to_properties(self.properties)},
        )
        driver_spark_conf = {
            **spec.driver_spark_conf,
            config.INIT_CONTAINER_CONFIG_MAP: self._config_map_name,
            config.INIT_CONTAINER_CONFIG_MAP_KEY_CONF: self._config_map_key,
        }
        return spec.replace(
            driver_pod=self._driver_pod(spec.driver_pod),
            driver_container=self._download_mounts(spec.driver_container),
            other_kubernetes_resources=(*spec.other_kubernetes_resources, config_map),
            driver_spark_conf=driver_spark_conf,
        )
