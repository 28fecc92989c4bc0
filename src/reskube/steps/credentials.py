#!/usr/bin/env python3
"""
steps/credentials.py
====================

Mounts the credentials the driver uses to talk to the Kubernetes API server.
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

import base64
import copy
import pathlib
from typing import TYPE_CHECKING

from kubernetes import client

from .. import config, constants, get_logger
from ..bootstrap import PodWithMainContainer, add_volume, add_volume_mount
from ..common.exceptions import ConfigurationValidationError, context
from .base import DriverConfigurationStep

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..spec import KubernetesDriverSpec

logger = get_logger(__name__)

# conf suffix -> secret data key
_CREDENTIAL_FILES = {
    config.OAUTH_TOKEN_FILE_CONF_SUFFIX: constants.DRIVER_CREDENTIALS_OAUTH_TOKEN_SECRET_NAME,
    config.CLIENT_KEY_FILE_CONF_SUFFIX: constants.DRIVER_CREDENTIALS_CLIENT_KEY_SECRET_NAME,
    config.CLIENT_CERT_FILE_CONF_SUFFIX: constants.DRIVER_CREDENTIALS_CLIENT_CERT_SECRET_NAME,
    config.CA_CERT_FILE_CONF_SUFFIX: constants.DRIVER_CREDENTIALS_CA_CERT_SECRET_NAME,
}


def _read_base64(path: str) -> str:
    _path = pathlib.Path(path)
    if not _path.is_file():
        raise context.FileNotFoundError(f"Credentials file '{path}' does not exist")
    return base64.b64encode(_path.read_bytes()).decode("ascii")


class DriverKubernetesCredentialsStep(DriverConfigurationStep):
    """
    Ships the submitter's OAuth token, client key and certificates to the
    driver as a secret and points the driver's `mounted` properties to the
    mounted files.

    Parameters
    ----------
    conf : Mapping[str, str]
        The submission properties.
    resource_name_prefix : str
        Prefix of all Kubernetes resource names of the submission.

    Raises
    ------
    ConfigurationValidationError
        If a credential is given both as submitter-side file and as a file
        already mounted in the driver.
    """

    def __init__(self, conf: Mapping[str, str], resource_name_prefix: str):
        self._secret_name = f"{resource_name_prefix}-kubernetes-credentials"
        self._service_account_name = conf.get(config.DRIVER_SERVICE_ACCOUNT_NAME)
        self._oauth_token = conf.get(
            f"{config.APISERVER_AUTH_DRIVER_CONF_PREFIX}.{config.OAUTH_TOKEN_CONF_SUFFIX}"
        )
        self._files = {}
        for suffix in _CREDENTIAL_FILES:
            _file = conf.get(f"{config.APISERVER_AUTH_DRIVER_CONF_PREFIX}.{suffix}")
            _mounted = conf.get(f"{config.APISERVER_AUTH_DRIVER_MOUNTED_CONF_PREFIX}.{suffix}")
            if _file and _mounted:
                raise ConfigurationValidationError(
                    f"Both '{config.APISERVER_AUTH_DRIVER_CONF_PREFIX}.{suffix}' and "
                    f"'{config.APISERVER_AUTH_DRIVER_MOUNTED_CONF_PREFIX}.{suffix}' are set"
                )
            if _file:
                self._files[suffix] = _file
        if self._oauth_token and config.OAUTH_TOKEN_FILE_CONF_SUFFIX in self._files:
            raise ConfigurationValidationError(
                "Only one of OAuth token and OAuth token file may be set for the driver"
            )

    def _secret_data(self) -> dict[str, str]:
        data = {
            _CREDENTIAL_FILES[suffix]: _read_base64(path) for suffix, path in self._files.items()
        }
        if self._oauth_token:
            data[constants.DRIVER_CREDENTIALS_OAUTH_TOKEN_SECRET_NAME] = base64.b64encode(
                self._oauth_token.encode("utf-8")
            ).decode("ascii")
        return data

    def _with_service_account(self, pod: client.V1Pod) -> client.V1Pod:
        if not self._service_account_name:
            return pod
        pod = copy.deepcopy(pod)
        pod.spec.service_account_name = self._service_account_name
        return pod

    def apply(self, spec: KubernetesDriverSpec) -> KubernetesDriverSpec:
        driver_pod = self._with_service_account(spec.driver_pod)
        secret_data = self._secret_data()
        if not secret_data:
            return spec.replace(driver_pod=driver_pod)

        logger.debug(f"Mounting Kubernetes credentials {sorted(secret_data)} for the driver")
        secret = client.V1Secret(
            api_version="v1",
            kind="Secret",
            metadata=client.V1ObjectMeta(name=self._secret_name),
            type="Opaque",
            data=secret_data,
        )

        driver_spark_conf = dict(spec.driver_spark_conf)
        for suffix, secret_key in _CREDENTIAL_FILES.items():
            if secret_key in secret_data:
                driver_spark_conf[
                    f"{config.APISERVER_AUTH_DRIVER_MOUNTED_CONF_PREFIX}.{suffix}"
                ] = f"{constants.DRIVER_CREDENTIALS_SECRETS_BASE_DIR}/{secret_key}"
        # the token itself must not leak into the driver's properties
        _oauth_token_key = f"{config.APISERVER_AUTH_DRIVER_CONF_PREFIX}.{config.OAUTH_TOKEN_CONF_SUFFIX}"
        if _oauth_token_key in driver_spark_conf:
            driver_spark_conf[_oauth_token_key] = constants.REDACTED_OAUTH_TOKEN

        mounted = PodWithMainContainer(
            add_volume(
                driver_pod,
                client.V1Volume(
                    name=constants.DRIVER_CREDENTIALS_SECRET_VOLUME_NAME,
                    secret=client.V1SecretVolumeSource(secret_name=self._secret_name),
                ),
            ),
            add_volume_mount(
                spec.driver_container,
                constants.DRIVER_CREDENTIALS_SECRET_VOLUME_NAME,
                constants.DRIVER_CREDENTIALS_SECRETS_BASE_DIR,
            ),
        )
        return spec.replace(
            driver_pod=mounted.pod,
            driver_container=mounted.main_container,
            other_kubernetes_resources=(*spec.other_kubernetes_resources, secret),
            driver_spark_conf=driver_spark_conf,
        )
