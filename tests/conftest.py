"""Shared fixtures for reskube tests."""

import logging

import pytest

from reskube.security.provider import Identity, IdentityProvider
from reskube.security.tokens import Credentials, DelegationTokenIdentifier, Token
from reskube.submission import JavaMainAppResource, SubmissionContext

CORE_SITE = """<?xml version="1.0"?>
<configuration>
  <property>
    <name>fs.defaultFS</name>
    <value>hdfs://namenode.example.com:8020</value>
  </property>
  <property>
    <name>hadoop.security.authentication</name>
    <value>{authentication}</value>
  </property>
</configuration>
"""

HDFS_SITE = """<?xml version="1.0"?>
<configuration>
  <property>
    <name>dfs.namenode.hostname</name>
    <value>namenode.example.com</value>
  </property>
  <property>
    <name>dfs.namenode.http-address</name>
    <value>${dfs.namenode.hostname}:9870</value>
  </property>
</configuration>
"""


def make_token(
    kind="HDFS_DELEGATION_TOKEN", service="namenode.example.com:8020", issue_date=1_000, **kwargs
):
    """A token whose identifier is a delegation token identifier."""
    identifier = DelegationTokenIdentifier(
        owner=kwargs.pop("owner", "alice"),
        renewer=kwargs.pop("renewer", "alice"),
        issue_date=issue_date,
        max_date=issue_date + 7 * 24 * 3600 * 1000,
        sequence_number=kwargs.pop("sequence_number", 1),
        master_key_id=kwargs.pop("master_key_id", 2),
    )
    return Token(identifier.to_bytes(), b"password", kind, service)


class FakeIdentityProvider(IdentityProvider):
    """
    Identity provider recording its calls.

    Parameters
    ----------
    tokens : list[Token]
        Tokens handed out by `add_delegation_token`, one per call.
    renewals : dict[int, int | Exception]
        New expiration time, or an exception to raise, per token sequence number.
    """

    def __init__(self, tokens=None, renewals=None, security_enabled=True, login_error=None):
        self.tokens = list(tokens) if tokens is not None else [make_token()]
        self.renewals = renewals or {}
        self.security_enabled = security_enabled
        self.login_error = login_error
        self.calls = []
        self.current = None
        self.ambient = Identity(user_name="bob@EXAMPLE.COM")

    def is_security_enabled(self, conf):
        return self.security_enabled

    def login_from_keytab(self, principal, keytab):
        self.calls.append(("login_from_keytab", principal, str(keytab)))
        if self.login_error is not None:
            raise self.login_error
        return Identity(user_name=principal, ticket_cache="FILE:/tmp/krb5cc_test")

    def current_identity(self):
        self.calls.append(("current_identity",))
        return self.ambient

    def run_as(self, identity, action):
        self.calls.append(("run_as", identity.user_name))
        self.current = identity
        try:
            return action()
        finally:
            self.current = None

    def add_delegation_token(self, conf, renewer, credentials):
        self.calls.append(("add_delegation_token", renewer, self.current.user_name))
        for token in self.tokens:
            credentials.add_token(token.service or token.kind, token)

    def renew_token(self, token, conf):
        self.calls.append(("renew_token", token.kind))
        result = self.renewals[token.decode_identifier().sequence_number]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture(autouse=True)
def _propagate_reskube_logs(monkeypatch):
    """Let caplog see the records of the library logger."""
    monkeypatch.setattr(logging.getLogger("reskube"), "propagate", True)


@pytest.fixture
def provider():
    return FakeIdentityProvider()


@pytest.fixture
def hadoop_conf_dir(tmp_path):
    """A Hadoop configuration directory with Kerberos authentication."""
    conf_dir = tmp_path / "hadoop-conf"
    conf_dir.mkdir()
    (conf_dir / "core-site.xml").write_text(CORE_SITE.format(authentication="kerberos"))
    (conf_dir / "hdfs-site.xml").write_text(HDFS_SITE)
    return conf_dir


@pytest.fixture
def make_context():
    """Factory of submission contexts for a Java application."""

    def _make_context(conf=None, **kwargs):
        kwargs.setdefault("main_app_resource", JavaMainAppResource("local:///opt/spark/app.jar"))
        return SubmissionContext(
            namespace=kwargs.pop("namespace", "default"),
            kubernetes_app_id=kwargs.pop("kubernetes_app_id", "spark-1234"),
            app_name=kwargs.pop("app_name", "Spark.Pi"),
            main_class=kwargs.pop("main_class", "org.apache.spark.examples.SparkPi"),
            conf=dict(conf or {}),
            launch_time=kwargs.pop("launch_time", 1_500_000_000_000),
            **kwargs,
        )

    return _make_context


@pytest.fixture
def credentials():
    creds = Credentials()
    creds.add_token("namenode.example.com:8020", make_token())
    return creds
