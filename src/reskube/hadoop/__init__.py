#!/usr/bin/env python3
"""
hadoop
======

Submodule implementing Hadoop configuration handling and WebHDFS access used to
obtain and renew delegation tokens.
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"
