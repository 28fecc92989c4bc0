#!/usr/bin/env python3
"""
bootstrap.py
============

Pod bootstraps shared by configuration steps: mounting the Hadoop
configuration directory and the delegation token secret into the driver pod.

Bootstraps work on a `PodWithMainContainer` and return a new one, the given
pod and container are deep-copied before they are edited.
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

import copy
from typing import Any

import msgspec
from kubernetes import client

from . import constants, get_logger

logger = get_logger(__name__)


class PodWithMainContainer(msgspec.Struct, frozen=True):
    """A pod and its main container."""

    pod: Any
    main_container: Any


def add_env(container: client.V1Container, name: str, value: str) -> client.V1Container:
    """Return a copy of `container` with the environment variable set."""
    container = copy.deepcopy(container)
    env = [var for var in (container.env or []) if var.name != name]
    env.append(client.V1EnvVar(name=name, value=value))
    container.env = env
    return container


def add_volume_mount(
    container: client.V1Container, name: str, mount_path: str
) -> client.V1Container:
    """Return a copy of `container` mounting volume `name` at `mount_path`."""
    container = copy.deepcopy(container)
    container.volume_mounts = [
        *(container.volume_mounts or []),
        client.V1VolumeMount(name=name, mount_path=mount_path),
    ]
    return container


def add_volume(pod: client.V1Pod, volume: client.V1Volume) -> client.V1Pod:
    """Return a copy of `pod` with `volume` added to its spec."""
    pod = copy.deepcopy(pod)
    pod.spec.volumes = [*(pod.spec.volumes or []), volume]
    return pod


class HadoopConfBootstrap:
    """
    Mounts the Hadoop configuration config map at `/etc/hadoop/conf` and points
    `HADOOP_CONF_DIR` to it.

    Parameters
    ----------
    config_map_name : str
        Name of the config map holding the Hadoop configuration files.
    file_names : list[str]
        The configuration file names, each is a key of the config map.
    """

    def __init__(self, config_map_name: str, file_names: list[str]):
        self._config_map_name = config_map_name
        self._file_names = file_names

    def bootstrap_main_container_and_volumes(
        self, original: PodWithMainContainer
    ) -> PodWithMainContainer:
        logger.debug(f"Mounting Hadoop configuration files {self._file_names}")
        volume = client.V1Volume(
            name=constants.HADOOP_FILE_VOLUME,
            config_map=client.V1ConfigMapVolumeSource(
                name=self._config_map_name,
                items=[client.V1KeyToPath(key=name, path=name) for name in self._file_names],
            ),
        )
        container = add_volume_mount(
            original.main_container, constants.HADOOP_FILE_VOLUME, constants.HADOOP_CONF_DIR_PATH
        )
        container = add_env(container, constants.ENV_HADOOP_CONF_DIR, constants.HADOOP_CONF_DIR_PATH)
        return PodWithMainContainer(add_volume(original.pod, volume), container)


class KerberosTokenConfBootstrap:
    """
    Mounts the delegation token secret into the driver pod and points
    `HADOOP_TOKEN_FILE_LOCATION` to the token file.

    Parameters
    ----------
    secret_name : str
        Name of the secret holding the delegation tokens.
    secret_item_key : str
        Data key of the tokens within the secret.
    user_name : str, optional
        The job user, exported as `SPARK_USER`.
    """

    def __init__(self, secret_name: str, secret_item_key: str, user_name: str | None = None):
        self._secret_name = secret_name
        self._secret_item_key = secret_item_key
        self._user_name = user_name

    def bootstrap_main_container_and_volumes(
        self, original: PodWithMainContainer
    ) -> PodWithMainContainer:
        logger.debug(
            f"Mounting delegation tokens '{self._secret_item_key}' of secret '{self._secret_name}'"
        )
        volume = client.V1Volume(
            name=constants.HADOOP_KERBEROS_SECRET_VOLUME_NAME,
            secret=client.V1SecretVolumeSource(secret_name=self._secret_name),
        )
        container = add_volume_mount(
            original.main_container,
            constants.HADOOP_KERBEROS_SECRET_VOLUME_NAME,
            constants.SPARK_APP_HADOOP_CREDENTIALS_BASE_DIR,
        )
        container = add_env(
            container,
            constants.ENV_HADOOP_TOKEN_FILE_LOCATION,
            f"{constants.SPARK_APP_HADOOP_CREDENTIALS_BASE_DIR}/{self._secret_item_key}",
        )
        if self._user_name:
            container = add_env(container, constants.ENV_SPARK_USER, self._user_name)
        return PodWithMainContainer(add_volume(original.pod, volume), container)
