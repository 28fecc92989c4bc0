#!/usr/bin/env python3
"""
common/exceptions.py
====================

This module implements reskube exceptions and WebHDFS request error handling.
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"


# imports
import os
import subprocess
import sys

from requests import Response
from requests import exceptions as request_exceptions


class ReskubeError(Exception):
    """Basic reskube exception"""


class ConfigurationValidationError(ReskubeError, ValueError):
    """The submission configuration is invalid"""


class IdentityLoginError(ReskubeError):
    """Login with a principal and keytab failed"""


class TokenSerializationError(ReskubeError):
    """Credentials could not be written to or read from token storage"""


class WebHDFSError(ReskubeError):
    """Internal exceptions from WebHDFS requests"""


class WebHDFSHTTPError(WebHDFSError):
    """Internal HTTP exceptions from WebHDFS requests"""


class WebHDFSSSLError(WebHDFSError):
    """Internal SSL exceptions from WebHDFS requests"""


class WebHDFSProxyError(WebHDFSError):
    """Internal proxy exceptions from WebHDFS requests"""


class WebHDFSConnectionError(WebHDFSError, ConnectionError):
    """Internal connection exceptions from WebHDFS requests"""


class _Context:
    """
    Namespace of builtin exceptions that are also `ReskubeError`s.

    `context.ValueError("...")` raises an exception that can be caught either
    as `ValueError` or as `ReskubeError`.
    """

    _wrappers: dict[str, type[Exception]] = {}

    @classmethod
    def register_wrapper(cls, exc: type[Exception]):
        cls._wrappers[exc.__name__] = type(exc.__name__, (ReskubeError, exc), {})

    def __getattr__(self, name: str) -> type[Exception]:
        try:
            return self._wrappers[name]
        except KeyError:
            raise AttributeError(f"No wrapped exception '{name}'") from None


for exc in [
    ValueError,
    KeyError,
    TypeError,
    FileNotFoundError,
    AttributeError,
    subprocess.SubprocessError,
]:
    _Context.register_wrapper(exc)

context = _Context()


_401_ERROR_HINT = (
    "{exception_msg}\n\n"
    "401 Unauthorized: The WebHDFS request lacks valid authentication. "
    "Make sure a valid Kerberos ticket is present for the job user, either from "
    "the local ticket cache (`kinit`) or from the configured principal and keytab."
    "\nDebug info: List of Kerberos tickets:\n{krb5_tickets}"
)

_403_ERROR_HINT = (
    "{exception_msg}\n\n"
    "403 Forbidden: The NameNode refused to issue or renew the delegation token. "
    "Check that the renewer is allowed to renew tokens and that the job user "
    "may impersonate the requested user."
)

_HTTP_ERROR_HINT = (
    "{exception_msg}\n\n"
    "HTTP Error: The WebHDFS service returned an error. Check the NameNode address "
    "in `hdfs-site.xml` and the service logs."
)

_CONNECTION_ERROR_HINT = (
    "{exception_msg}\n\n"
    "Connection Error: There's a problem connecting to WebHDFS. "
    "Check the NameNode address, the network connection, and the service itself."
)

_PROXY_ERROR_HINT = (
    "{exception_msg}\n\n"
    "Proxy Error: There's an issue with the proxy server. Check your proxy "
    "settings. Proxies used: {proxies}"
)

_SSL_ERROR_HINT = (
    "{exception_msg}\n\n"
    "SSL Error: There's an issue with the SSL/TLS certificates of the NameNode. "
    "Check the certificates and the `dfs.http.policy` of your Hadoop configuration."
)


def krb_cache() -> str:
    """Get the current kerberos cache."""
    try:
        return (
            subprocess.run(["klist"], text=True, capture_output=True, check=False).stdout
            or "Cache is empty"
        )
    except FileNotFoundError:
        return "klist not available"


def handle_request_exception(
    exception: Exception,
    failed_response: Response | None = None,
    proxies: dict[str, str] | None = None,
):
    """Handle request exceptions for failed WebHDFS requests.

    Parameters
    ----------
    exception : Exception
        Exception object for failed request.
    failed_response : Response, optional
        The response of the failed request to handle
    proxies : dict[str, str], optional
        Proxies used for the request. Default is None.

    Raises
    ------
    WebHDFSHTTPError
        If the request returns an HTTP error status code.
    WebHDFSProxyError
        If there is an issue with the specified proxies.
    WebHDFSSSLError
        If there is an issue with the SSL certificates used for the request.
    WebHDFSConnectionError
        If there is an issue establishing a connection for the request.
    """
    exception_msg = str(exception)

    if isinstance(exception, request_exceptions.ProxyError):
        _proxies = proxies or {"http": os.getenv("HTTP_PROXY"), "https": os.getenv("HTTPS_PROXY")}
        _error = WebHDFSProxyError
        _message = _PROXY_ERROR_HINT.format(exception_msg=exception_msg, proxies=_proxies)
    elif isinstance(exception, request_exceptions.SSLError):
        _error = WebHDFSSSLError
        _message = _SSL_ERROR_HINT.format(exception_msg=exception_msg)
    elif isinstance(exception, request_exceptions.ConnectionError):
        _error = WebHDFSConnectionError
        _message = _CONNECTION_ERROR_HINT.format(exception_msg=exception_msg)
    elif "401" in exception_msg:
        _error = WebHDFSHTTPError
        _message = _401_ERROR_HINT.format(exception_msg=exception_msg, krb5_tickets=krb_cache())
    elif "403" in exception_msg:
        _error = WebHDFSHTTPError
        _message = _403_ERROR_HINT.format(exception_msg=exception_msg)
    elif isinstance(exception, request_exceptions.HTTPError):
        _error = WebHDFSHTTPError
        _message = _HTTP_ERROR_HINT.format(exception_msg=exception_msg)
    else:
        raise exception

    raise _error(
        f"{_message}\n\nOriginal server response:\n{failed_response.text}"
        if failed_response is not None
        else _message
    ).with_traceback(sys.exc_info()[2])
