#!/usr/bin/env python3
"""
Reskube
=======

`Reskube` builds the Kubernetes configuration of a Spark driver pod at
submission time. The driver specification is assembled by running an ordered
list of configuration steps over an immutable, accumulating specification.

Features:
---------
- **Step Pipeline**: Every part of the driver pod (base pod, Kubernetes API
  credentials, dependency resolution, init-container, Hadoop configuration,
  Python runtime) is contributed by an independent configuration step.
- **Kerberos Support**: Delegation tokens are acquired for the job user, either
  from a principal and keytab or from the local ticket cache, and shipped to the
  driver as a Kubernetes secret together with a computed renewal schedule.
- **No Java Requirement**: Tokens are fetched and renewed using WebHDFS's REST
  API and are serialized to Hadoop's native token-storage format in Python.
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"


# version
try:
    from ._version import __version__, __version_tuple__, version
except ImportError:
    __version__ = version = "0.0.0"
    __version_tuple__ = (0, 0, 0)

import pathlib

LIBRARY_NAME = __name__

# set up logging
from .common.logging import get_logger  # noqa: E402

logger = get_logger(__name__)

# type definitions
PathType = str | pathlib.Path
