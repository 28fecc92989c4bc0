#!/usr/bin/env python3
"""
steps/kerberos.py
=================

Kerberos steps of the Hadoop configuration: acquiring delegation tokens for
the job user and shipping them to the driver as secret, or mounting a secret
provisioned beforehand.
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

import base64
import time
from typing import TYPE_CHECKING

import msgspec
from kubernetes import client

from .. import PathType, config, constants, get_logger
from ..bootstrap import KerberosTokenConfBootstrap, PodWithMainContainer
from ..security.renewal import RENEWAL_INTERVAL_NEVER, compute_renewal_interval
from .base import HadoopConfigurationStep

if TYPE_CHECKING:
    from collections.abc import Callable

    from ..hadoop.config import HadoopConfig
    from ..security.provider import IdentityProvider
    from ..security.tokens import Credentials
    from ..spec import HadoopConfigSpec

logger = get_logger(__name__)


def _now_millis() -> int:
    return time.time_ns() // 1_000_000


class RenewalPlan(msgspec.Struct, frozen=True):
    """
    When the delegation tokens of a secret must be renewed.

    Parameters
    ----------
    renewal_interval : int
        The renewal interval in milliseconds, `RENEWAL_INTERVAL_NEVER` if the
        tokens are never renewed.
    current_time : int
        The acquisition time in milliseconds since the epoch.
    """

    renewal_interval: int
    current_time: int

    @property
    def data_key(self) -> str:
        """The data key of the tokens, read by the token refresh service."""
        return (
            f"{constants.KERBEROS_SECRET_LABEL_PREFIX}-{self.current_time}-{self.renewal_interval}"
        )


class CredentialSecret(msgspec.Struct, frozen=True):
    """Serialized delegation tokens and the secret they are stored in."""

    secret_name: str
    data_key: str
    payload: bytes

    def to_kubernetes(self) -> client.V1Secret:
        return client.V1Secret(
            api_version="v1",
            kind="Secret",
            metadata=client.V1ObjectMeta(
                name=self.secret_name,
                labels={constants.KERBEROS_REFRESH_LABEL_KEY: constants.KERBEROS_REFRESH_LABEL_VALUE},
            ),
            type="Opaque",
            data={self.data_key: base64.b64encode(self.payload).decode("ascii")},
        )


def _with_token_secret(
    spec: HadoopConfigSpec,
    secret_name: str,
    data_key: str,
    user_name: str | None = None,
) -> HadoopConfigSpec:
    bootstrapped = KerberosTokenConfBootstrap(
        secret_name, data_key, user_name
    ).bootstrap_main_container_and_volumes(
        PodWithMainContainer(spec.driver_pod, spec.driver_container)
    )
    return spec.replace(
        driver_pod=bootstrapped.pod,
        driver_container=bootstrapped.main_container,
        additional_driver_spark_conf={
            **spec.additional_driver_spark_conf,
            config.HADOOP_KERBEROS_CONF_ITEM_KEY: data_key,
            config.HADOOP_KERBEROS_CONF_SECRET: secret_name,
        },
        dt_secret_name=secret_name,
        dt_secret_item_key=data_key,
    )


class HadoopKerberosKeytabResolverStep(HadoopConfigurationStep):
    """
    Acquires delegation tokens for the job user and stores them in a secret
    mounted into the driver pod.

    The job user is either logged in with `principal` and `keytab`, or is the
    ambient identity of the submitting process, e.g. obtained by `kinit`
    beforehand.

    Parameters
    ----------
    hadoop_conf : HadoopConfig
        The Hadoop configuration of the cluster.
    provider : IdentityProvider
        The provider acquiring and renewing the tokens.
    resource_name_prefix : str
        Prefix of all Kubernetes resource names of the submission.
    principal : str, optional
        The job user principal.
    keytab : PathType, optional
        The keytab of `principal`.
    clock : Callable[[], int], optional
        Returns the current time in milliseconds since the epoch, by default
        the system clock.

    Raises
    ------
    IdentityLoginError
        If the keytab login fails.
    TokenSerializationError
        If the acquired tokens cannot be serialized, no secret is emitted then.
    """

    def __init__(  # noqa: PLR0913
        self,
        hadoop_conf: HadoopConfig,
        provider: IdentityProvider,
        resource_name_prefix: str,
        principal: str | None = None,
        keytab: PathType | None = None,
        clock: Callable[[], int] | None = None,
    ):
        self._hadoop_conf = hadoop_conf
        self._provider = provider
        self._secret_name = f"{resource_name_prefix}-{constants.HADOOP_KERBEROS_SECRET_SUFFIX}"
        self._principal = principal
        self._keytab = keytab
        self._clock = clock or _now_millis

    def __repr__(self) -> str:
        return f"{type(self).__name__}(principal={self._principal!r}, keytab={self._keytab!r})"

    def _acquire(self, identity, renewer: str) -> Credentials:
        original = self._provider.snapshot_credentials(identity)
        logger.debug(f"Original tokens: {original!r}")
        credentials = original.copy()
        self._provider.add_delegation_token(self._hadoop_conf, renewer, credentials)
        logger.debug(f"Tokens: {credentials!r}")
        return credentials

    def apply(self, spec: HadoopConfigSpec) -> HadoopConfigSpec:
        if not self._provider.is_security_enabled(self._hadoop_conf):
            logger.warning("Hadoop is not configured with Kerberos authentication")

        if self._principal is not None and self._keytab is not None:
            identity = self._provider.login_from_keytab(self._principal, self._keytab)
            logger.debug(f"Logged into KDC with keytab as '{identity.user_name}'")
        else:
            identity = self._provider.current_identity()
            logger.debug(f"Using ambient identity '{identity.user_name}'")

        renewer = identity.short_user_name
        logger.debug(f"Renewer is '{renewer}'")
        credentials = self._provider.run_as(identity, lambda: self._acquire(identity, renewer))

        tokens = credentials.tokens
        if not tokens:
            logger.error("Did not obtain any delegation tokens")

        payload = self._provider.serialize(credentials)
        renewal_interval = compute_renewal_interval(tokens, self._hadoop_conf, self._provider)
        plan = RenewalPlan(
            renewal_interval=(
                RENEWAL_INTERVAL_NEVER if renewal_interval is None else renewal_interval
            ),
            current_time=self._clock(),
        )
        secret = CredentialSecret(
            secret_name=self._secret_name, data_key=plan.data_key, payload=payload
        )
        logger.debug(f"Storing {len(tokens)} token(s) as '{secret.data_key}' of '{secret.secret_name}'")

        spec = _with_token_secret(spec, secret.secret_name, secret.data_key, renewer)
        return spec.replace(dt_secret=secret.to_kubernetes())


class HadoopKerberosSecretResolverStep(HadoopConfigurationStep):
    """
    Mounts delegation tokens provisioned beforehand.

    Parameters
    ----------
    secret_name : str
        Name of the existing secret.
    item_key : str
        Data key of the tokens within the secret.
    """

    def __init__(self, secret_name: str, item_key: str):
        self._secret_name = secret_name
        self._item_key = item_key

    def __repr__(self) -> str:
        return f"{type(self).__name__}(secret_name={self._secret_name!r}, item_key={self._item_key!r})"

    def apply(self, spec: HadoopConfigSpec) -> HadoopConfigSpec:
        logger.debug(f"Using delegation tokens '{self._item_key}' of secret '{self._secret_name}'")
        return _with_token_secret(spec, self._secret_name, self._item_key)
