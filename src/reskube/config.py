#!/usr/bin/env python3
"""
config.py
=========

The configuration surface of a submission: a flat `dict[str, str]` of Spark
properties. This module names the recognised keys and provides `SubmissionConf`,
a typed, validated view on them.

Example
-------

```python
from reskube.config import SubmissionConf

conf = SubmissionConf.from_conf(
    {
        "spark.kubernetes.kerberos.enabled": "true",
        "spark.kubernetes.kerberos.principal": "alice@EXAMPLE.COM",
        "spark.kubernetes.kerberos.keytab": "/etc/security/alice.keytab",
    }
)
conf.has_keytab_login  # True
```
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

from collections.abc import Mapping

import msgspec

from .common.exceptions import ConfigurationValidationError

# kerberos
KERBEROS_ENABLED = "spark.kubernetes.kerberos.enabled"
KERBEROS_PRINCIPAL = "spark.kubernetes.kerberos.principal"
KERBEROS_KEYTAB = "spark.kubernetes.kerberos.keytab"
KERBEROS_DT_SECRET_NAME = "spark.kubernetes.kerberos.tokensecret.name"
KERBEROS_DT_SECRET_ITEM_KEY = "spark.kubernetes.kerberos.tokensecret.itemkey"
KERBEROS_ACQUIRE_FROM_TICKET_CACHE = "spark.kubernetes.kerberos.tokensecret.acquire"

# dependencies
SPARK_JARS = "spark.jars"
SPARK_FILES = "spark.files"
JARS_DOWNLOAD_LOCATION = "spark.kubernetes.mountdependencies.jarsDownloadDir"
FILES_DOWNLOAD_LOCATION = "spark.kubernetes.mountdependencies.filesDownloadDir"
INIT_CONTAINER_IMAGE = "spark.kubernetes.initcontainer.docker.image"

# driver pod
DOCKER_IMAGE_PULL_POLICY = "spark.kubernetes.docker.image.pullPolicy"
DRIVER_DOCKER_IMAGE = "spark.kubernetes.driver.docker.image"
DRIVER_LABEL_PREFIX = "spark.kubernetes.driver.label."
DRIVER_LABELS = "spark.kubernetes.driver.labels"
DRIVER_ANNOTATION_PREFIX = "spark.kubernetes.driver.annotation."
DRIVER_ENV_PREFIX = "spark.kubernetes.driverEnv."
DRIVER_CORES = "spark.driver.cores"
DRIVER_LIMIT_CORES = "spark.kubernetes.driver.limit.cores"
DRIVER_MEMORY = "spark.driver.memory"
DRIVER_MEMORY_OVERHEAD = "spark.kubernetes.driver.memoryOverhead"
DRIVER_POD_NAME = "spark.kubernetes.driver.pod.name"
EXECUTOR_POD_NAME_PREFIX = "spark.kubernetes.executor.podNamePrefix"
SPARK_APP_ID = "spark.app.id"
SPARK_APP_NAME = "spark.app.name"

# kubernetes API credentials of the driver
APISERVER_AUTH_DRIVER_CONF_PREFIX = "spark.kubernetes.authenticate.driver"
APISERVER_AUTH_DRIVER_MOUNTED_CONF_PREFIX = "spark.kubernetes.authenticate.driver.mounted"
OAUTH_TOKEN_CONF_SUFFIX = "oauthToken"
OAUTH_TOKEN_FILE_CONF_SUFFIX = "oauthTokenFile"
CLIENT_KEY_FILE_CONF_SUFFIX = "clientKeyFile"
CLIENT_CERT_FILE_CONF_SUFFIX = "clientCertFile"
CA_CERT_FILE_CONF_SUFFIX = "caCertFile"
DRIVER_SERVICE_ACCOUNT_NAME = "spark.kubernetes.authenticate.driver.serviceAccountName"

# init-container
INIT_CONTAINER_CONFIG_MAP = "spark.kubernetes.initcontainer.executor.configmapname"
INIT_CONTAINER_CONFIG_MAP_KEY_CONF = "spark.kubernetes.initcontainer.executor.configmapkey"
INIT_CONTAINER_REMOTE_JARS = "spark.kubernetes.initcontainer.remoteJars"
INIT_CONTAINER_REMOTE_FILES = "spark.kubernetes.initcontainer.remoteFiles"

# hadoop
HADOOP_CONFIG_MAP_SPARK_CONF_NAME = "spark.kubernetes.hadoop.executor.hadoopConfigMapName"
HADOOP_CONF_DIR_LOC = "spark.kubernetes.hadoop.conf.dir"
HADOOP_KERBEROS_CONF_SECRET = "spark.hadoop.kerberos.secret"
HADOOP_KERBEROS_CONF_ITEM_KEY = "spark.hadoop.kerberos.item.key"

_TRUE = frozenset({"true", "1", "yes", "on"})
_FALSE = frozenset({"false", "0", "no", "off"})


def parse_bool(key: str, value: str | bool | None, default: bool = False) -> bool:
    """Parse a boolean property, raise `ConfigurationValidationError` on garbage."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    _value = value.strip().lower()
    if _value in _TRUE:
        return True
    if _value in _FALSE:
        return False
    raise ConfigurationValidationError(f"'{key}' must be a boolean, got '{value}'")


def split_list(value: str | None) -> list[str]:
    """Split a comma separated property, dropping empty entries."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def prefixed(conf: Mapping[str, str], prefix: str) -> dict[str, str]:
    """Return all properties starting with `prefix`, with the prefix stripped."""
    return {key[len(prefix) :]: value for key, value in conf.items() if key.startswith(prefix)}


def combine_prefixed_with_deprecated(
    conf: Mapping[str, str], prefix: str, deprecated_key: str, kind: str
) -> dict[str, str]:
    """
    Collect key-value pairs from prefixed properties and a deprecated comma
    separated `key=value` list.

    Parameters
    ----------
    conf : Mapping[str, str]
        The submission properties.
    prefix : str
        The prefix of the properties, e.g. `'spark.kubernetes.driver.label.'`.
    deprecated_key : str
        The key of the deprecated list, e.g. `'spark.kubernetes.driver.labels'`.
    kind : str
        Name of the pairs used in error messages, e.g. `'label'`.

    Raises
    ------
    ConfigurationValidationError
        If an entry of the deprecated list is not a `key=value` pair or a key is
        given in both forms.
    """
    _deprecated = {}
    for entry in split_list(conf.get(deprecated_key)):
        key, sep, value = entry.partition("=")
        if not sep or not key.strip():
            raise ConfigurationValidationError(
                f"Invalid {kind} '{entry}' in '{deprecated_key}', expected 'key=value'"
            )
        _deprecated[key.strip()] = value.strip()

    _prefixed = prefixed(conf, prefix)
    _duplicates = set(_deprecated) & set(_prefixed)
    if _duplicates:
        raise ConfigurationValidationError(
            f"The {kind}(s) {sorted(_duplicates)} are set both via '{prefix}' and "
            f"'{deprecated_key}'"
        )
    return _deprecated | _prefixed


class SubmissionConf(msgspec.Struct, frozen=True, kw_only=True):
    """
    Typed view on the recognised submission options.

    Parameters
    ----------
    security_enabled : bool
        Whether Kerberos support is enabled, by default `False`.
    principal : str, optional
        The job user principal.
    keytab_path : str, optional
        The keytab of the principal.
    existing_secret_name : str, optional
        Name of a secret holding pre-provisioned delegation tokens.
    existing_secret_label : str, optional
        The data key of the tokens within the existing secret.
    acquire_from_ticket_cache : bool
        Whether to acquire tokens using the ambient identity if neither a
        keytab nor an existing secret is given, by default `True`.
    jars_download_path : str
        Where jars are downloaded to in the driver pod.
    files_download_path : str
        Where files are downloaded to in the driver pod.
    image_pull_policy : str
        The image pull policy of the driver and init-containers.
    """

    security_enabled: bool = False
    principal: str | None = None
    keytab_path: str | None = None
    existing_secret_name: str | None = None
    existing_secret_label: str | None = None
    acquire_from_ticket_cache: bool = True
    jars_download_path: str = "/var/spark-data/spark-jars"
    files_download_path: str = "/var/spark-data/spark-files"
    image_pull_policy: str = "IfNotPresent"

    @classmethod
    def from_conf(cls, conf: Mapping[str, str]) -> SubmissionConf:
        """Build the view from the flat submission properties."""
        _defaults = cls()
        return cls(
            security_enabled=parse_bool(KERBEROS_ENABLED, conf.get(KERBEROS_ENABLED)),
            principal=conf.get(KERBEROS_PRINCIPAL) or None,
            keytab_path=conf.get(KERBEROS_KEYTAB) or None,
            existing_secret_name=conf.get(KERBEROS_DT_SECRET_NAME) or None,
            existing_secret_label=conf.get(KERBEROS_DT_SECRET_ITEM_KEY) or None,
            acquire_from_ticket_cache=parse_bool(
                KERBEROS_ACQUIRE_FROM_TICKET_CACHE,
                conf.get(KERBEROS_ACQUIRE_FROM_TICKET_CACHE),
                default=True,
            ),
            jars_download_path=conf.get(JARS_DOWNLOAD_LOCATION) or _defaults.jars_download_path,
            files_download_path=(
                conf.get(FILES_DOWNLOAD_LOCATION) or _defaults.files_download_path
            ),
            image_pull_policy=conf.get(DOCKER_IMAGE_PULL_POLICY) or _defaults.image_pull_policy,
        )

    @property
    def has_keytab_login(self) -> bool:
        return self.principal is not None and self.keytab_path is not None

    @property
    def has_existing_secret(self) -> bool:
        return self.existing_secret_name is not None and self.existing_secret_label is not None
