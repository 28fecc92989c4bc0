#!/usr/bin/env python3
"""
spec.py
=======

The specifications threaded through the configuration steps.

Both specs are frozen `msgspec.Struct`s. A step never changes the spec it is
given, it returns a new one with `replace`. Kubernetes models held by a spec
are treated as immutable too: a step deep-copies a model before editing it.
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

from typing import TYPE_CHECKING, Any

import msgspec
from kubernetes import client

if TYPE_CHECKING:
    from collections.abc import Mapping


def empty_pod() -> client.V1Pod:
    return client.V1Pod(
        api_version="v1",
        kind="Pod",
        metadata=client.V1ObjectMeta(),
        spec=client.V1PodSpec(containers=[]),
    )


def empty_container() -> client.V1Container:
    # the name is set by the base driver step
    return client.V1Container(name="")


class KubernetesDriverSpec(msgspec.Struct, frozen=True, kw_only=True):
    """
    The accumulated driver specification.

    Parameters
    ----------
    driver_pod : kubernetes.client.V1Pod
        The driver pod, without the main container.
    driver_container : kubernetes.client.V1Container
        The main container of the driver pod.
    other_kubernetes_resources : tuple
        Secrets and config maps the driver pod depends on.
    driver_spark_conf : dict[str, str]
        The Spark properties handed to the driver.
    """

    driver_pod: Any
    driver_container: Any
    other_kubernetes_resources: tuple = ()
    driver_spark_conf: dict[str, str] = msgspec.field(default_factory=dict)

    @classmethod
    def initial(cls, conf: Mapping[str, str]) -> KubernetesDriverSpec:
        """Empty pod and container, the driver conf starts as a copy of `conf`."""
        return cls(
            driver_pod=empty_pod(),
            driver_container=empty_container(),
            driver_spark_conf=dict(conf),
        )

    def replace(self, **changes) -> KubernetesDriverSpec:
        return msgspec.structs.replace(self, **changes)


class HadoopConfigSpec(msgspec.Struct, frozen=True, kw_only=True):
    """
    The accumulated specification of the Hadoop configuration steps.

    Parameters
    ----------
    driver_pod : kubernetes.client.V1Pod
        The driver pod.
    driver_container : kubernetes.client.V1Container
        The main container of the driver pod.
    additional_driver_spark_conf : dict[str, str]
        Spark properties to add to the driver conf.
    config_map_properties : dict[str, str]
        Contents of the Hadoop config map, file name to file contents.
    dt_secret : kubernetes.client.V1Secret, optional
        The secret holding freshly acquired delegation tokens.
    dt_secret_name : str
        Name of the secret the driver reads its delegation tokens from.
    dt_secret_item_key : str
        Data key of the delegation tokens within that secret.
    """

    driver_pod: Any
    driver_container: Any
    additional_driver_spark_conf: dict[str, str] = msgspec.field(default_factory=dict)
    config_map_properties: dict[str, str] = msgspec.field(default_factory=dict)
    dt_secret: Any = None
    dt_secret_name: str = ""
    dt_secret_item_key: str = ""

    def replace(self, **changes) -> HadoopConfigSpec:
        return msgspec.structs.replace(self, **changes)
