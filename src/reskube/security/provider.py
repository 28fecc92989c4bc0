#!/usr/bin/env python3
"""
security/provider.py
====================

The identity provider acquires security tokens on behalf of a job identity.

`IdentityProvider` is the interface the configuration steps use. It replaces
Hadoop's process wide `UserGroupInformation`: the current identity and logins
are obtained through the provider, never from process state directly.

`KerberosIdentityProvider` implements it on top of the MIT Kerberos tools and
the WebHDFS REST API:

- logins with principal and keytab are written to a private credential cache,
  the submitting user's ticket cache is only read,
- `run_as` switches `KRB5CCNAME` to the identity's cache for the duration of a
  blocking call,
- delegation tokens are fetched and renewed using WebHDFS.
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

import abc
import contextlib
import getpass
import os
import pathlib
import tempfile
from typing import TYPE_CHECKING, TypeVar

import msgspec

from .. import PathType, get_logger
from ..common.kerberos import default_principal, kinit_with_keytab
from ..hadoop.filesystem import HDFSFileSystem
from .tokens import Credentials, Token

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from ..hadoop.config import HadoopConfig

logger = get_logger(__name__)

T = TypeVar("T")

HADOOP_TOKEN_FILE_LOCATION = "HADOOP_TOKEN_FILE_LOCATION"
"""Environment variable of a token storage file Hadoop loads on login."""
KRB5CCNAME = "KRB5CCNAME"
"""Environment variable of the Kerberos credential cache."""


class Identity(msgspec.Struct, frozen=True, kw_only=True):
    """
    A job identity.

    Parameters
    ----------
    user_name : str
        The full user name, a Kerberos principal for secure logins.
    ticket_cache : str, optional
        The Kerberos credential cache of the identity. `None` refers to the
        ambient ticket cache.
    credentials : Credentials
        The tokens the identity already holds.
    """

    user_name: str
    ticket_cache: str | None = None
    credentials: Credentials = msgspec.field(default_factory=Credentials)

    @property
    def short_user_name(self) -> str:
        """The user name without host and realm, e.g. `'alice'` for `'alice/host@REALM'`."""
        return self.user_name.split("@", 1)[0].split("/", 1)[0]


class IdentityProvider(abc.ABC):
    """
    Interface to acquire and handle tokens on behalf of a job identity.

    All methods are blocking. `run_as` is a synchronous context switch: the
    action runs to completion under the given identity before control returns,
    errors raised by the action propagate after the switch is undone.
    """

    @abc.abstractmethod
    def is_security_enabled(self, conf: HadoopConfig) -> bool:
        """Whether Kerberos security is enabled for the cluster."""

    @abc.abstractmethod
    def login_from_keytab(self, principal: str, keytab: PathType) -> Identity:
        """Log in as `principal` using `keytab` and return the identity."""

    @abc.abstractmethod
    def current_identity(self) -> Identity:
        """Return the identity of the ambient ticket cache or OS user."""

    @abc.abstractmethod
    def run_as(self, identity: Identity, action: Callable[[], T]) -> T:
        """Run `action` with the authority of `identity` and return its result."""

    @abc.abstractmethod
    def add_delegation_token(self, conf: HadoopConfig, renewer: str, credentials: Credentials):
        """Obtain a delegation token for the default filesystem and add it to `credentials`."""

    @abc.abstractmethod
    def renew_token(self, token: Token, conf: HadoopConfig) -> int:
        """Renew `token` and return its new expiration time in milliseconds."""

    def snapshot_credentials(self, identity: Identity) -> Credentials:
        """Return the credentials held by `identity`."""
        return identity.credentials

    def serialize(self, credentials: Credentials) -> bytes:
        """Serialize `credentials` to Hadoop's token storage format."""
        return credentials.write_token_storage()

    def deserialize(self, data: bytes) -> Credentials:
        """Read credentials from Hadoop's token storage format."""
        return Credentials.read_token_storage(data)


class KerberosIdentityProvider(IdentityProvider):
    """
    Identity provider using Kerberos and WebHDFS.

    Parameters
    ----------
    ccache_dir : PathType, optional
        Directory for the credential caches of keytab logins. By default a
        temporary directory which lives as long as the provider.
    **fs_kwargs
        Additional keyword arguments for the WebHDFS filesystem, e.g.
        `session_verify` or `kerb_kwargs`.
    """

    def __init__(self, ccache_dir: PathType | None = None, **fs_kwargs):
        if ccache_dir is None:
            self._tmpdir = tempfile.TemporaryDirectory(prefix="reskube-krb5-")
            ccache_dir = self._tmpdir.name
        self._ccache_dir = pathlib.Path(ccache_dir)
        self._fs_kwargs = fs_kwargs

    def is_security_enabled(self, conf: HadoopConfig) -> bool:
        return conf.is_kerberos_enabled

    def login_from_keytab(self, principal: str, keytab: PathType) -> Identity:
        _ccache = self._ccache_dir / f"krb5cc_{principal.replace('/', '_').replace('@', '_')}"
        ticket_cache = kinit_with_keytab(principal, keytab, _ccache)
        logger.debug(f"Logged into KDC as '{principal}' using keytab '{keytab}'")
        return Identity(user_name=principal, ticket_cache=ticket_cache)

    def current_identity(self) -> Identity:
        user_name = default_principal() or os.getenv("HADOOP_USER_NAME") or getpass.getuser()
        credentials = Credentials()
        token_file = os.getenv(HADOOP_TOKEN_FILE_LOCATION)
        if token_file:
            logger.debug(f"Loading tokens from '{token_file}'")
            credentials = self.deserialize(pathlib.Path(token_file).read_bytes())
        return Identity(user_name=user_name, credentials=credentials)

    @contextlib.contextmanager
    def _ticket_cache(self, identity: Identity) -> Iterator[None]:
        if identity.ticket_cache is None:
            yield
            return

        _previous = os.environ.get(KRB5CCNAME)
        os.environ[KRB5CCNAME] = identity.ticket_cache
        try:
            yield
        finally:
            if _previous is None:
                os.environ.pop(KRB5CCNAME, None)
            else:
                os.environ[KRB5CCNAME] = _previous

    def run_as(self, identity: Identity, action: Callable[[], T]) -> T:
        logger.debug(f"Running as '{identity.user_name}'")
        with self._ticket_cache(identity):
            return action()

    def add_delegation_token(self, conf: HadoopConfig, renewer: str, credentials: Credentials):
        service = conf.name_node_service
        fs = HDFSFileSystem.from_config(conf, **self._fs_kwargs)
        token = Token.decode_from_url_string(
            fs.get_delegation_token(renewer, service, "HDFS_DELEGATION_TOKEN")["urlString"]
        )
        logger.debug(f"Obtained delegation token for service '{token.service or service}'")
        credentials.add_token(token.service or service or token.kind, token)

    def renew_token(self, token: Token, conf: HadoopConfig) -> int:
        fs = HDFSFileSystem.from_config(conf, **self._fs_kwargs)
        return int(fs.renew_delegation_token(token.encode_to_url_string()))
