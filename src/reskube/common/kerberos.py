#!/usr/bin/env python3
"""
common/kerberos.py
==================

Thin wrappers around the MIT Kerberos command line tools (`kinit`, `klist`).

Logins always write to a dedicated credential cache, the ambient ticket cache
of the submitting user is only ever read.
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

# imports
import pathlib
import re
import subprocess
from urllib.parse import urlparse

from .. import PathType, logger
from .exceptions import IdentityLoginError


def keytab_path(keytab: PathType) -> pathlib.Path:
    """Resolve a keytab location given as a path or a `file://` URI."""
    _keytab = str(keytab)
    if _keytab.startswith("file:"):
        _keytab = urlparse(_keytab).path
    return pathlib.Path(_keytab)


def default_principal(ccache: str | None = None) -> str | None:
    """
    Get the default principal of a credential cache.

    Parameters
    ----------
    ccache : str, optional
        The credential cache to inspect, by default the ambient cache.

    Returns
    -------
    str | None
        The principal or `None` if the cache holds no valid ticket or `klist`
        is not installed.
    """
    _cmd = ["klist"] + (["-c", ccache] if ccache else [])
    try:
        _ret = subprocess.run(_cmd, capture_output=True, text=True, check=False)
    except FileNotFoundError:
        logger.debug("'klist' not found, no Kerberos ticket cache available")
        return None

    if _ret.returncode != 0:
        return None

    _match = re.search(r"Default principal:\s*(\S+)", _ret.stdout)
    return _match.group(1) if _match else None


def kinit_with_keytab(principal: str, keytab: PathType, ccache: PathType) -> str:
    """Kinit with keytab file into the credential cache `ccache`

    Parameters
    ----------
    principal : str
        The principal to get a tgt for.
    keytab : PathType
        Path or `file://` URI of the keytab file.
    ccache : PathType
        Path of the credential cache file to write the tgt to.

    Returns
    -------
    str
        The credential cache name, usable as `KRB5CCNAME`.

    Raises
    ------
    IdentityLoginError
        An exception is raised in case the keytab is missing or kinit fails.
    """
    if "@" not in principal:
        raise IdentityLoginError(f"Missing realm in principal '{principal}'")

    _keytab = keytab_path(keytab)
    if not _keytab.exists():
        raise IdentityLoginError(f"keytab doesn't exist at '{keytab}'")

    _ccache = f"FILE:{ccache}"
    logger.debug(f"Running 'kinit' with keytab '{_keytab}' and principal '{principal}'")
    try:
        _r = subprocess.run(
            ["kinit", "-kt", str(_keytab), "-c", _ccache, principal],
            capture_output=True,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as e:
        raise IdentityLoginError(f"Could not run 'kinit' for '{principal}': {e}") from e

    if _r.returncode != 0:
        raise IdentityLoginError(
            f"Login as '{principal}' with keytab '{_keytab}' failed: {_r.stderr.decode().strip()}"
        )

    return _ccache
