#!/usr/bin/env python3
"""
steps/hadoop.py
===============

Ships the Hadoop configuration of the submitting host to the driver pod.

`HadoopStepsOrchestrator` validates the Kerberos options and selects the
Hadoop configuration steps, `HadoopConfigBootstrapStep` applies them as one
driver configuration step.
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

import pathlib
from typing import TYPE_CHECKING

from kubernetes import client

from .. import PathType, config, get_logger
from ..bootstrap import HadoopConfBootstrap, PodWithMainContainer
from ..common.exceptions import ConfigurationValidationError
from ..config import SubmissionConf
from ..hadoop.config import HadoopConfig
from ..spec import HadoopConfigSpec
from .base import DriverConfigurationStep, HadoopConfigurationStep
from .kerberos import HadoopKerberosKeytabResolverStep, HadoopKerberosSecretResolverStep

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from ..security.provider import IdentityProvider
    from ..spec import KubernetesDriverSpec

logger = get_logger(__name__)


def _read_conf_file(path: pathlib.Path) -> str:
    """Read a configuration file as UTF-8, replacing undecodable bytes."""
    _content = path.read_bytes()
    try:
        return _content.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning(f"'{path}' is not UTF-8 encoded, undecodable bytes are replaced")
        return _content.decode("utf-8", errors="replace")


class HadoopConfMounterStep(HadoopConfigurationStep):
    """
    Puts the Hadoop configuration files into a config map and mounts it at
    `/etc/hadoop/conf`.

    Parameters
    ----------
    config_map_name : str
        Name of the config map holding the files.
    hadoop_conf_files : Sequence[PathType]
        The configuration files.
    hadoop_conf_dir : str
        The configuration directory on the submitting host, passed on to the
        driver and executors.
    """

    def __init__(
        self,
        config_map_name: str,
        hadoop_conf_files: Sequence[PathType],
        hadoop_conf_dir: str,
    ):
        self._config_map_name = config_map_name
        self._hadoop_conf_files = [pathlib.Path(path) for path in hadoop_conf_files]
        self._hadoop_conf_dir = hadoop_conf_dir

    def __repr__(self) -> str:
        return f"{type(self).__name__}(config_map_name={self._config_map_name!r})"

    def apply(self, spec: HadoopConfigSpec) -> HadoopConfigSpec:
        file_names = [path.name for path in self._hadoop_conf_files]
        bootstrapped = HadoopConfBootstrap(
            self._config_map_name, file_names
        ).bootstrap_main_container_and_volumes(
            PodWithMainContainer(spec.driver_pod, spec.driver_container)
        )
        return spec.replace(
            driver_pod=bootstrapped.pod,
            driver_container=bootstrapped.main_container,
            config_map_properties={
                **spec.config_map_properties,
                **{path.name: _read_conf_file(path) for path in self._hadoop_conf_files},
            },
            additional_driver_spark_conf={
                **spec.additional_driver_spark_conf,
                config.HADOOP_CONFIG_MAP_SPARK_CONF_NAME: self._config_map_name,
                config.HADOOP_CONF_DIR_LOC: self._hadoop_conf_dir,
            },
        )


class HadoopConfigBootstrapStep(DriverConfigurationStep):
    """
    Applies the Hadoop configuration steps and folds their result into the
    driver specification.

    Parameters
    ----------
    hadoop_steps : Sequence[HadoopConfigurationStep]
        The Hadoop configuration steps, applied in order.
    config_map_name : str
        Name of the config map holding the Hadoop configuration files.
    """

    def __init__(self, hadoop_steps: Sequence[HadoopConfigurationStep], config_map_name: str):
        self.hadoop_steps = list(hadoop_steps)
        self._config_map_name = config_map_name

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.hadoop_steps!r})"

    def apply(self, spec: KubernetesDriverSpec) -> KubernetesDriverSpec:
        hadoop_spec = HadoopConfigSpec(
            driver_pod=spec.driver_pod, driver_container=spec.driver_container
        )
        for step in self.hadoop_steps:
            logger.debug(f"Applying Hadoop configuration step {step!r}")
            hadoop_spec = step.apply(hadoop_spec)

        config_map = client.V1ConfigMap(
            api_version="v1",
            kind="ConfigMap",
            metadata=client.V1ObjectMeta(name=self._config_map_name),
            data=dict(hadoop_spec.config_map_properties),
        )
        resources = [config_map]
        if hadoop_spec.dt_secret is not None:
            resources.append(hadoop_spec.dt_secret)
        return spec.replace(
            driver_pod=hadoop_spec.driver_pod,
            driver_container=hadoop_spec.driver_container,
            other_kubernetes_resources=(*spec.other_kubernetes_resources, *resources),
            driver_spark_conf={
                **spec.driver_spark_conf,
                **hadoop_spec.additional_driver_spark_conf,
            },
        )


class HadoopStepsOrchestrator:
    """
    Selects the Hadoop configuration steps of a submission.

    Parameters
    ----------
    namespace : str
        The namespace of the submission.
    hadoop_config_map_name : str
        Name of the config map holding the Hadoop configuration files.
    conf : Mapping[str, str]
        The submission properties.
    hadoop_conf_files : Sequence[PathType]
        The Hadoop configuration files.
    provider : IdentityProvider
        The provider acquiring delegation tokens.
    resource_name_prefix : str, optional
        Prefix of the Kubernetes resource names of the submission, by default
        `hadoop_config_map_name`.
    hadoop_conf_dir : PathType, optional
        The directory holding `hadoop_conf_files`, by default the directory of
        the first file.

    Raises
    ------
    ConfigurationValidationError
        If the Kerberos options are inconsistent.
    """

    def __init__(  # noqa: PLR0913
        self,
        namespace: str,
        hadoop_config_map_name: str,
        conf: Mapping[str, str],
        hadoop_conf_files: Sequence[PathType],
        provider: IdentityProvider,
        resource_name_prefix: str | None = None,
        hadoop_conf_dir: PathType | None = None,
    ):
        self._namespace = namespace
        self._hadoop_config_map_name = hadoop_config_map_name
        self._hadoop_conf_files = [pathlib.Path(path) for path in hadoop_conf_files]
        self._provider = provider
        self._resource_name_prefix = resource_name_prefix or hadoop_config_map_name
        if hadoop_conf_dir is None and self._hadoop_conf_files:
            hadoop_conf_dir = self._hadoop_conf_files[0].parent
        self._hadoop_conf_dir = str(hadoop_conf_dir or "")
        self._submission_conf = SubmissionConf.from_conf(conf)
        self._validate()

    def _validate(self):
        _conf = self._submission_conf
        if not _conf.security_enabled:
            _set = [
                key
                for key, value in (
                    (config.KERBEROS_KEYTAB, _conf.keytab_path),
                    (config.KERBEROS_PRINCIPAL, _conf.principal),
                    (config.KERBEROS_DT_SECRET_NAME, _conf.existing_secret_name),
                    (config.KERBEROS_DT_SECRET_ITEM_KEY, _conf.existing_secret_label),
                )
                if value is not None
            ]
            if _set:
                raise ConfigurationValidationError(
                    f"{_set} can only be set if '{config.KERBEROS_ENABLED}' is true"
                )
        if (_conf.principal is None) != (_conf.keytab_path is None):
            raise ConfigurationValidationError(
                f"'{config.KERBEROS_PRINCIPAL}' and '{config.KERBEROS_KEYTAB}' must be set together"
            )
        if (_conf.existing_secret_name is None) != (_conf.existing_secret_label is None):
            raise ConfigurationValidationError(
                f"'{config.KERBEROS_DT_SECRET_NAME}' and '{config.KERBEROS_DT_SECRET_ITEM_KEY}' "
                "must be set together"
            )

    def get_hadoop_steps(self) -> list[HadoopConfigurationStep]:
        """
        Return the Hadoop configuration steps in application order.

        The configuration is always mounted. With Kerberos enabled, tokens are
        acquired with the principal and keytab if given, else an existing
        secret is mounted if given, else tokens are acquired as the ambient
        identity unless disabled by
        `spark.kubernetes.kerberos.tokensecret.acquire`.
        """
        _conf = self._submission_conf
        steps: list[HadoopConfigurationStep] = [
            HadoopConfMounterStep(
                self._hadoop_config_map_name, self._hadoop_conf_files, self._hadoop_conf_dir
            )
        ]
        if not _conf.security_enabled:
            return steps

        if _conf.has_keytab_login:
            steps.append(self._keytab_resolver(_conf.principal, _conf.keytab_path))
        elif _conf.has_existing_secret:
            steps.append(
                HadoopKerberosSecretResolverStep(
                    _conf.existing_secret_name, _conf.existing_secret_label
                )
            )
        elif _conf.acquire_from_ticket_cache:
            steps.append(self._keytab_resolver())
        else:
            logger.warning(
                "Kerberos is enabled without keytab or token secret and token acquisition "
                "is disabled, the driver won't get delegation tokens"
            )
        logger.debug(f"Hadoop configuration steps: {steps}")
        return steps

    def _keytab_resolver(
        self, principal: str | None = None, keytab: str | None = None
    ) -> HadoopKerberosKeytabResolverStep:
        return HadoopKerberosKeytabResolverStep(
            HadoopConfig(self._hadoop_conf_dir or None),
            self._provider,
            self._resource_name_prefix,
            principal=principal,
            keytab=keytab,
        )
