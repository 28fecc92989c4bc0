#!/usr/bin/env python3
"""
hadoop/config.py
================

This module implements the parts of Hadoop core and HDFS config handling that
are needed to ship a Hadoop configuration directory to the driver pod and to
obtain delegation tokens from the NameNode.

The module uses a caching mechanism to avoid redundant parsing of the same
configuration file. The cache is cleared if the modification time of the file
is changed. This is done by the `config_cache` decorator, which is applied to
the `_parse_hadoop_config` function.

Example
-------

```python
from reskube.hadoop.config import HadoopConfig

# Create a HadoopConfig object
config = HadoopConfig('/path/to/hadoop/config/files')

# Get a configuration value
value = config.get('fs.defaultFS')
```
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

# imports
import os
import pathlib
import re
import xml.etree.ElementTree as ET
from functools import cache, wraps
from typing import TYPE_CHECKING
from urllib.parse import urlparse

# module imports
from .. import PathType, logger

if TYPE_CHECKING:
    from collections.abc import Callable

HADOOP_CONF_DIR_ENV = "HADOOP_CONF_DIR"
"""Environment variable pointing to the Hadoop configuration directory."""


def config_cache(func: Callable):
    """
    A decorator that caches the results of a function and clears the cache if
    the relevant configuration file has been modified.

    Parameters
    ----------
    func : Callable
        The function to be decorated.

    Returns
    -------
    Callable
        The decorated function.
    """
    conf_files_ts = {}

    @wraps(func)
    def wrapper(conf_file, *args, **kwargs):
        _mtime = conf_file.stat().st_mtime
        if conf_file not in conf_files_ts:
            conf_files_ts[conf_file] = _mtime
        elif conf_files_ts[conf_file] < _mtime:
            # the file changed since it was parsed
            conf_files_ts[conf_file] = _mtime
            func.cache_clear()

        return func(conf_file, *args, **kwargs)

    return wrapper


@config_cache
@cache
def _parse_hadoop_config(config: pathlib.Path) -> dict[str, str]:
    """
    Parse a Hadoop configuration file and return a dictionary of configuration
    properties.

    Parameters
    ----------
    config : pathlib.Path
        The path to the Hadoop configuration file, e.g. `core-site.xml`.

    Returns
    -------
    dict[str, str]
        A dictionary where the keys are the names of the properties and the
        values are the corresponding property values.
    """
    root = ET.parse(str(config)).getroot()

    properties = {}
    for prop in root.findall("./property"):
        _name = prop.findtext("name")
        if _name:
            properties[_name.strip()] = (prop.findtext("value") or "").strip()

    return properties


def list_conf_files(conf_dir: PathType | None) -> list[pathlib.Path]:
    """
    List the regular files of a Hadoop configuration directory.

    Parameters
    ----------
    conf_dir : PathType, optional
        The directory to list.

    Returns
    -------
    list[pathlib.Path]
        The files sorted by name, or an empty list if `conf_dir` is not set or
        is not a directory.
    """
    if not conf_dir:
        return []
    _dir = pathlib.Path(conf_dir)
    if not _dir.is_dir():
        logger.debug(f"Hadoop configuration directory '{_dir}' does not exist")
        return []
    return sorted(file for file in _dir.iterdir() if file.is_file())


class HadoopConfig:
    """
    Read-only view on a Hadoop configuration directory.

    It provides methods to retrieve Hadoop configuration parameters from the
    `*-site.xml` files found in the directory (`core-site.xml`,
    `hdfs-site.xml`, ...).

    Parameters
    ----------
    config_path : PathType, optional
        The path to the Hadoop configuration directory. If not provided, the
        `HADOOP_CONF_DIR` environment variable is used, falling back to
        `"/etc/hadoop/conf"`.
    """

    def __init__(self, config_path: PathType | None = None):
        self._config_path = config_path

    def __repr__(self) -> str:
        return f"HadoopConfig(config_dir='{self.config_dir}')"

    @property
    def config_dir(self) -> pathlib.Path:
        """
        Get the Hadoop configuration directory.

        Returns
        -------
        pathlib.Path
            The path to the Hadoop configuration directory.
        """
        return pathlib.Path(
            self._config_path or os.getenv(HADOOP_CONF_DIR_ENV) or "/etc/hadoop/conf"
        )

    @property
    def conf_files(self) -> list[pathlib.Path]:
        """All regular files of the configuration directory."""
        return list_conf_files(self.config_dir)

    def get(self, key: str, default: str | None = None) -> str | None:
        """
        Return the value of a key from the XML files of the configuration
        directory.

        If the value contains a reference to another key (in the format
        `${other_key}`), the reference is resolved recursively.

        Parameters
        ----------
        key : str
            The name of the key to retrieve the value for.
        default : str, optional
            The value returned if the key is not found, by default `None`.

        Returns
        -------
        str | None
            The value of the specified key.
        """
        return self._resolve(key, default, frozenset())

    def _resolve(self, key: str, default: str | None, seen: frozenset[str]) -> str | None:
        _value = default
        for _conf_file in sorted(self.config_dir.glob("*.xml")):
            _properties = _parse_hadoop_config(_conf_file)
            if key in _properties:
                _value = _properties[key]
                logger.debug(f"Got key '{key}' with value '{_value}' from '{_conf_file}'")
                break

        # Note: hadoop config files can use value interpolation like,
        # <property>
        #     <name>dfs.namenode.http-address</name>
        #     <value>${dfs.namenode.hostname}:9870</value>
        # </property>
        # Cyclic references are left unresolved.
        if _value and "${" in _value:
            for _ref in re.findall(r"\$\{(.*?)\}", _value):
                if _ref == key or _ref in seen:
                    logger.warning(f"Cyclic reference to '{_ref}' in the value of '{key}'")
                    continue
                _sub = self._resolve(_ref, None, seen | {key})
                if _sub is not None:
                    _value = _value.replace(f"${{{_ref}}}", _sub)

        return _value

    @property
    def defaultfs(self) -> str | None:
        """
        Retrieves the default filesystem (fs) for Hadoop. This is specified by
        `fs.defaultFS` or can be set via the `HADOOP_DEFAULT_FS` environment
        variable.
        """
        return os.getenv("HADOOP_DEFAULT_FS") or self.get("fs.defaultFS")

    @property
    def is_kerberos_enabled(self) -> bool:
        """
        Checks if Kerberos authentication is enabled.
        This is determined by the `hadoop.security.authentication` key.
        """
        return (self.get("hadoop.security.authentication") or "simple").lower() == "kerberos"

    @property
    def hdfs_https_only(self) -> bool:
        """
        Determines if `HTTPS_ONLY` is the configured policy for `WebHDFS`.
        This is determined by the `dfs.http.policy` configuration key.
        """
        return self.get("dfs.http.policy") == "HTTPS_ONLY"

    @property
    def name_node_ids(self) -> list[str] | None:
        """
        Retrieves the NameNode IDs of an HA nameservice.
        This is determined by the `dfs.ha.namenodes.{nameservice}` key.
        """
        _nameservice = urlparse(self.defaultfs).hostname if self.defaultfs else None
        nn_ids = self.get(f"dfs.ha.namenodes.{_nameservice}") if _nameservice else None
        return [nn_id.strip() for nn_id in nn_ids.split(",")] if nn_ids else None

    @property
    def name_node_webhdfs_addresses(self) -> list[str]:
        """
        Retrieves the NameNode WebHDFS address(es) as `scheme://host:port`.

        This is determined by the `dfs.namenode.http(s)-address[.{nameservice}]`
        configuration keys. If no address is configured, the host of the default
        filesystem and the default NameNode HTTP(S) port is used.
        """
        _nameservice = urlparse(self.defaultfs).hostname if self.defaultfs else None
        _scheme, _policy_key, _default_port = (
            ("https", "dfs.namenode.https-address", 9871)
            if self.hdfs_https_only
            else ("http", "dfs.namenode.http-address", 9870)
        )

        if self.name_node_ids:
            _addresses = [
                self.get(f"{_policy_key}.{_nameservice}.{nn_id}") for nn_id in self.name_node_ids
            ]
        else:
            _addresses = [self.get(_policy_key)]

        _addresses = [address for address in _addresses if address]
        if not _addresses and _nameservice:
            _addresses = [f"{_nameservice}:{_default_port}"]

        return [f"{_scheme}://{address}" for address in _addresses]

    @property
    def name_node_service(self) -> str | None:
        """
        Retrieves the service name delegation tokens of the default filesystem
        are issued for, `ha-hdfs:{nameservice}` for HA clusters and the
        NameNode RPC `host:port` otherwise.
        """
        if not self.defaultfs:
            return None
        _parsed = urlparse(self.defaultfs)
        if self.name_node_ids:
            return f"ha-hdfs:{_parsed.hostname}"
        return f"{_parsed.hostname}:{_parsed.port or 8020}"
