#!/usr/bin/env python3
"""
orchestrator.py
===============

Selects and orders the configuration steps of a driver submission.

Example
-------

```python
from reskube.orchestrator import DriverConfigurationStepsOrchestrator
from reskube.submission import JavaMainAppResource, SubmissionContext

context = SubmissionContext(
    namespace="default",
    kubernetes_app_id="spark-1234",
    app_name="spark-pi",
    main_class="org.apache.spark.examples.SparkPi",
    main_app_resource=JavaMainAppResource("local:///opt/spark/examples.jar"),
)
steps = DriverConfigurationStepsOrchestrator(context).get_all_configuration_steps()
```
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

import os
from typing import TYPE_CHECKING

from . import PathType, config, constants, get_logger
from .common.exceptions import ConfigurationValidationError
from .common.utils import is_local_uri
from .hadoop.config import HADOOP_CONF_DIR_ENV, list_conf_files
from .security.provider import KerberosIdentityProvider
from .steps import (
    BaseDriverConfigurationStep,
    DependencyResolutionStep,
    DriverKubernetesCredentialsStep,
    HadoopConfigBootstrapStep,
    HadoopStepsOrchestrator,
    InitContainerBootstrapStep,
    PythonStep,
)
from .submission import PythonMainAppResource

if TYPE_CHECKING:
    from .security.provider import IdentityProvider
    from .steps import DriverConfigurationStep
    from .submission import SubmissionContext

logger = get_logger(__name__)


class DriverConfigurationStepsOrchestrator:
    """
    Builds the ordered configuration steps of a submission.

    Parameters
    ----------
    context : SubmissionContext
        The submission.
    provider : IdentityProvider, optional
        The provider acquiring delegation tokens, by default a
        `KerberosIdentityProvider`.
    hadoop_conf_dir : PathType, optional
        The Hadoop configuration directory, by default `HADOOP_CONF_DIR`. If it
        holds no files, no Hadoop configuration is shipped.
    """

    def __init__(
        self,
        context: SubmissionContext,
        provider: IdentityProvider | None = None,
        hadoop_conf_dir: PathType | None = None,
    ):
        self._context = context
        self._provider = provider
        self._hadoop_conf_dir = hadoop_conf_dir or os.getenv(HADOOP_CONF_DIR_ENV)
        self._submission_conf = config.SubmissionConf.from_conf(context.conf)

    @property
    def provider(self) -> IdentityProvider:
        if self._provider is None:
            self._provider = KerberosIdentityProvider()
        return self._provider

    def driver_labels(self) -> dict[str, str]:
        """
        All labels of the driver pod.

        Raises
        ------
        ConfigurationValidationError
            If a custom label uses the reserved `spark-app-id` key.
        """
        custom_labels = config.combine_prefixed_with_deprecated(
            self._context.conf, config.DRIVER_LABEL_PREFIX, config.DRIVER_LABELS, "label"
        )
        if constants.SPARK_APP_ID_LABEL in custom_labels:
            raise ConfigurationValidationError(
                f"Label with key '{constants.SPARK_APP_ID_LABEL}' is not allowed as it is "
                "reserved for Spark bookkeeping operations"
            )
        return {
            **custom_labels,
            constants.SPARK_APP_ID_LABEL: self._context.kubernetes_app_id,
            constants.SPARK_ROLE_LABEL: constants.SPARK_POD_DRIVER_ROLE,
        }

    def _hadoop_step(self) -> HadoopConfigBootstrapStep | None:
        hadoop_conf_files = list_conf_files(self._hadoop_conf_dir)
        if not hadoop_conf_files:
            return None

        _prefix = self._context.resource_name_prefix
        config_map_name = f"{_prefix}-hadoop-config"
        hadoop_steps = HadoopStepsOrchestrator(
            self._context.namespace,
            config_map_name,
            self._context.conf,
            hadoop_conf_files,
            self.provider,
            resource_name_prefix=_prefix,
            hadoop_conf_dir=self._hadoop_conf_dir,
        ).get_hadoop_steps()
        if not hadoop_steps:
            return None
        return HadoopConfigBootstrapStep(hadoop_steps, config_map_name)

    def get_all_configuration_steps(self) -> list[DriverConfigurationStep]:
        """
        Return the configuration steps in application order.

        The base driver, credentials and dependency resolution steps are always
        present, followed by the init-container step if any dependency has to
        be downloaded, the Hadoop step if a Hadoop configuration is found, and
        the Python step for Python applications.

        Raises
        ------
        ConfigurationValidationError
            If the labels or the Kerberos options are invalid. No step is built
            then.
        """
        _context = self._context
        _conf = self._submission_conf
        driver_labels = self.driver_labels()
        hadoop_step = self._hadoop_step()
        spark_jars = _context.spark_jars
        spark_files = _context.spark_files

        steps: list[DriverConfigurationStep] = [
            BaseDriverConfigurationStep(
                _context.kubernetes_app_id,
                _context.resource_name_prefix,
                driver_labels,
                _conf.image_pull_policy,
                _context.app_name,
                _context.main_class,
                _context.app_args,
                _context.conf,
            ),
            DriverKubernetesCredentialsStep(_context.conf, _context.resource_name_prefix),
            DependencyResolutionStep(
                spark_jars, spark_files, _conf.jars_download_path, _conf.files_download_path
            ),
        ]
        if any(not is_local_uri(uri) for uri in (*spark_jars, *spark_files)):
            steps.append(
                InitContainerBootstrapStep(
                    spark_jars,
                    spark_files,
                    _conf.jars_download_path,
                    _conf.files_download_path,
                    _conf.image_pull_policy,
                    _context.resource_name_prefix,
                    _context.conf,
                )
            )

        if hadoop_step is not None:
            steps.append(hadoop_step)

        if isinstance(_context.main_app_resource, PythonMainAppResource):
            steps.append(
                PythonStep(
                    _context.main_app_resource.resource,
                    _context.additional_python_files,
                    _conf.files_download_path,
                )
            )
        logger.debug(f"Configuration steps: {steps}")
        return steps
