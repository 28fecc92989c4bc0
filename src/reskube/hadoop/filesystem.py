#!/usr/bin/env python3
"""
hadoop/filesystem.py
====================

WebHDFS filesystem extending `fsspec`'s WebHDFS implementation to get a
delegation token for a specific service and kind from the [WebHDFS
endpoint][1] and to use internal request exception handling.

[1]: https://hadoop.apache.org/docs/stable/hadoop-project-dist/hadoop-hdfs/WebHDFS.html#Delegation_Token_Operations
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

# imports
from functools import wraps
from typing import IO, TYPE_CHECKING, Any
from urllib.parse import urlparse

from fsspec.implementations.webhdfs import WebHDFS

# module imports
from ..common.exceptions import context, handle_request_exception

if TYPE_CHECKING:
    from .config import HadoopConfig


class HDFSFileSystem(WebHDFS):
    """WebHDFS filesystem REST API wrapper based on fsspec's WebHDFS implementation."""

    # skip fsspec's instance cache, every identity needs its own session
    cachable = False

    @classmethod
    def from_config(cls, config: HadoopConfig, **kwargs) -> HDFSFileSystem:
        """
        Create a filesystem for the first NameNode WebHDFS address of `config`.

        Parameters
        ----------
        config : HadoopConfig
            The Hadoop configuration to read the NameNode address from.
        **kwargs
            Additional keyword arguments passed to `fsspec`'s `WebHDFS`.
        """
        _addresses = config.name_node_webhdfs_addresses
        if not _addresses:
            raise context.ValueError(
                f"No NameNode WebHDFS address found in Hadoop configuration '{config.config_dir}'"
            )
        _address = urlparse(_addresses[0])
        return cls(
            host=_address.hostname,
            port=_address.port or (9871 if _address.scheme == "https" else 9870),
            kerberos=config.is_kerberos_enabled,
            use_https=_address.scheme == "https",
            **kwargs,
        )

    # to use internal request exception handling
    @wraps(WebHDFS._call)
    def _call(  # noqa: PLR0913
        self,
        op: str,
        method: str = "get",
        path: str | None = None,
        data: dict | list[tuple[str, Any]] | bytes | IO | None = None,
        redirect: bool = True,
        **kwargs,
    ):
        """Patch fsspec WebHDFS `_call` method using exception handling"""
        try:
            return super()._call(
                op=op, method=method, path=path, data=data, redirect=redirect, **kwargs
            )
        except Exception as exc:
            handle_request_exception(exc, proxies=self.session.proxies)

    # to get delegation token with specific service and kind
    def get_delegation_token(
        self, renewer: str | None = None, service: str | None = None, kind: str | None = None
    ) -> dict[str, str]:
        """Retrieve token which can give the same authority to other users

        Parameters
        ----------
        renewer: str, optional
            User who may renew this token; if None, will be current user
        service: str, optional
            Service to get delegation token for; if None, will be `'WEBHDFS'` or
            `'SWEBHDFS'`
        kind: str, optional
            Kind to get token for; if None, will be `'WEBHDFS delegation'`
        """
        kwargs = {}
        if renewer:
            kwargs["renewer"] = renewer
        if service:
            kwargs["service"] = service
        if kind:
            kwargs["kind"] = kind
        out = self._call("GETDELEGATIONTOKEN", **kwargs)
        t = out.json()["Token"]
        if t is None:
            raise context.ValueError("No token available for this user/security context")
        return t
