"""Tests for the Kerberos delegation token steps."""

import base64
import logging

import pytest
from conftest import FakeIdentityProvider, make_token

from reskube import config, constants
from reskube.common.exceptions import IdentityLoginError, TokenSerializationError
from reskube.hadoop.config import HadoopConfig
from reskube.security.provider import Identity, IdentityProvider
from reskube.security.renewal import RENEWAL_INTERVAL_NEVER
from reskube.security.tokens import Credentials
from reskube.spec import HadoopConfigSpec, empty_container, empty_pod
from reskube.steps.kerberos import (
    CredentialSecret,
    HadoopKerberosKeytabResolverStep,
    HadoopKerberosSecretResolverStep,
    RenewalPlan,
)

NOW = 1_700_000_000_000


@pytest.fixture
def hadoop_spec():
    return HadoopConfigSpec(driver_pod=empty_pod(), driver_container=empty_container())


def _env(container):
    return {var.name: var.value for var in container.env or []}


def _resolver(provider, **kwargs):
    return HadoopKerberosKeytabResolverStep(
        HadoopConfig(), provider, "spark-pi-1", clock=lambda: NOW, **kwargs
    )


class TestRenewalPlan:
    """Tests for the renewal plan and the token secret."""

    def test_data_key(self):
        plan = RenewalPlan(renewal_interval=86_400_000, current_time=NOW)
        assert plan.data_key == f"hadoop-tokens-{NOW}-86400000"

    def test_secret_is_labelled_for_refresh(self):
        secret = CredentialSecret(secret_name="s", data_key="k", payload=b"HDTS").to_kubernetes()
        assert secret.metadata.name == "s"
        assert secret.metadata.labels == {"refresh-hadoop-tokens": "yes"}
        assert base64.b64decode(secret.data["k"]) == b"HDTS"


class TestHadoopKerberosKeytabResolverStep:
    """Tests for acquiring delegation tokens."""

    def test_keytab_login(self, hadoop_spec):
        provider = FakeIdentityProvider(renewals={1: 1_000 + 86_400_000})
        step = _resolver(provider, principal="alice/host@EXAMPLE.COM", keytab="/k/alice.keytab")

        spec = step.apply(hadoop_spec)

        assert provider.calls[0] == ("login_from_keytab", "alice/host@EXAMPLE.COM", "/k/alice.keytab")
        assert ("run_as", "alice/host@EXAMPLE.COM") in provider.calls
        # the renewer is the short name of the logged in identity
        assert ("add_delegation_token", "alice", "alice/host@EXAMPLE.COM") in provider.calls

        data_key = f"hadoop-tokens-{NOW}-86400000"
        assert spec.dt_secret_name == "spark-pi-1-delegation-tokens"
        assert spec.dt_secret_item_key == data_key
        assert spec.additional_driver_spark_conf == {
            config.HADOOP_KERBEROS_CONF_ITEM_KEY: data_key,
            config.HADOOP_KERBEROS_CONF_SECRET: "spark-pi-1-delegation-tokens",
        }

        payload = base64.b64decode(spec.dt_secret.data[data_key])
        restored = Credentials.read_token_storage(payload)
        assert restored.tokens == provider.tokens

    def test_pod_bootstrap(self, hadoop_spec):
        provider = FakeIdentityProvider(renewals={1: 2_000})
        spec = _resolver(provider).apply(hadoop_spec)

        env = _env(spec.driver_container)
        assert env[constants.ENV_HADOOP_TOKEN_FILE_LOCATION] == (
            f"/mnt/secrets/hadoop-credentials/{spec.dt_secret_item_key}"
        )
        assert env[constants.ENV_SPARK_USER] == "bob"
        assert spec.driver_container.volume_mounts[0].name == "hadoop-secret"
        assert spec.driver_container.volume_mounts[0].mount_path == "/mnt/secrets/hadoop-credentials"
        volume = spec.driver_pod.spec.volumes[0]
        assert volume.secret.secret_name == "spark-pi-1-delegation-tokens"

    def test_ambient_identity(self, hadoop_spec):
        provider = FakeIdentityProvider(renewals={1: 2_000})
        _resolver(provider).apply(hadoop_spec)
        assert provider.calls[0] == ("current_identity",)
        assert ("add_delegation_token", "bob", "bob@EXAMPLE.COM") in provider.calls

    def test_existing_tokens_are_kept(self, hadoop_spec):
        provider = FakeIdentityProvider(renewals={1: 2_000})
        existing = Credentials()
        existing.add_token("kafka", make_token(kind="kafka", service="kafka"))
        provider.ambient = Identity(user_name="bob", credentials=existing)

        spec = _resolver(provider).apply(hadoop_spec)

        payload = base64.b64decode(spec.dt_secret.data[spec.dt_secret_item_key])
        assert len(Credentials.read_token_storage(payload)) == 2
        # the identity's own credentials are left alone
        assert len(existing) == 1

    def test_login_failure_propagates(self, hadoop_spec):
        provider = FakeIdentityProvider(login_error=IdentityLoginError("kinit failed"))
        step = _resolver(provider, principal="alice@EXAMPLE.COM", keytab="/k/alice.keytab")
        with pytest.raises(IdentityLoginError):
            step.apply(hadoop_spec)
        assert not any(call[0] == "add_delegation_token" for call in provider.calls)

    def test_no_tokens_logs_error(self, hadoop_spec, caplog):
        provider = FakeIdentityProvider(tokens=[])
        with caplog.at_level(logging.ERROR, logger="reskube"):
            spec = _resolver(provider).apply(hadoop_spec)
        assert "Did not obtain any delegation tokens" in caplog.text
        assert spec.dt_secret_item_key == f"hadoop-tokens-{NOW}-{RENEWAL_INTERVAL_NEVER}"
        payload = base64.b64decode(spec.dt_secret.data[spec.dt_secret_item_key])
        assert payload == b"HDTS\x00\x00\x00"

    def test_failed_renewal_never_renews(self, hadoop_spec):
        provider = FakeIdentityProvider(renewals={1: RuntimeError("not renewable")})
        spec = _resolver(provider).apply(hadoop_spec)
        assert spec.dt_secret_item_key.endswith(f"-{RENEWAL_INTERVAL_NEVER}")

    def test_security_disabled_warns(self, hadoop_spec, caplog):
        provider = FakeIdentityProvider(renewals={1: 2_000}, security_enabled=False)
        with caplog.at_level(logging.WARNING, logger="reskube"):
            spec = _resolver(provider).apply(hadoop_spec)
        assert "not configured with Kerberos" in caplog.text
        assert spec.dt_secret is not None

    def test_serialization_failure_emits_no_secret(self, hadoop_spec):
        class FailingProvider(FakeIdentityProvider):
            def serialize(self, credentials):
                raise TokenSerializationError("boom")

        provider = FailingProvider(renewals={1: 2_000})
        with pytest.raises(TokenSerializationError):
            _resolver(provider).apply(hadoop_spec)
        assert not any(call[0] == "renew_token" for call in provider.calls)

    def test_input_spec_is_unchanged(self, hadoop_spec):
        provider = FakeIdentityProvider(renewals={1: 2_000})
        _resolver(provider).apply(hadoop_spec)
        assert hadoop_spec.driver_container.env is None
        assert hadoop_spec.driver_pod.spec.volumes is None
        assert hadoop_spec.dt_secret is None

    def test_data_key_changes_with_time(self, hadoop_spec):
        provider = FakeIdentityProvider(renewals={1: NOW + 86_400_000})
        times = iter([NOW, NOW + 60_000])
        step = HadoopKerberosKeytabResolverStep(
            HadoopConfig(), provider, "spark-pi-1", clock=lambda: next(times)
        )

        first = step.apply(hadoop_spec)
        second = step.apply(hadoop_spec)

        assert first.dt_secret_item_key != second.dt_secret_item_key
        assert first.dt_secret.data.keys() != second.dt_secret.data.keys()
        assert list(first.dt_secret.data.values()) == list(second.dt_secret.data.values())

    def test_provider_interface(self):
        assert isinstance(FakeIdentityProvider(), IdentityProvider)


class TestHadoopKerberosSecretResolverStep:
    """Tests for mounting pre-provisioned tokens."""

    def test_mounts_existing_secret(self, hadoop_spec):
        spec = HadoopKerberosSecretResolverStep("my-tokens", "hadoop-tokens-1-2").apply(hadoop_spec)
        assert spec.dt_secret is None
        assert spec.dt_secret_name == "my-tokens"
        assert spec.dt_secret_item_key == "hadoop-tokens-1-2"
        assert spec.additional_driver_spark_conf[config.HADOOP_KERBEROS_CONF_SECRET] == "my-tokens"
        env = _env(spec.driver_container)
        assert env[constants.ENV_HADOOP_TOKEN_FILE_LOCATION] == (
            "/mnt/secrets/hadoop-credentials/hadoop-tokens-1-2"
        )
        assert constants.ENV_SPARK_USER not in env
