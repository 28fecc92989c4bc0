#!/usr/bin/env python3
"""
steps/base.py
=============

Base classes of the configuration steps.

A configuration step contributes one slice of the driver specification. It is
a pure function of the spec it is applied to: `apply` must not change its
input and returns a new spec in which the fields it doesn't touch are carried
over unchanged.
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

import abc
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..spec import HadoopConfigSpec, KubernetesDriverSpec


class DriverConfigurationStep(abc.ABC):
    """A step configuring the driver pod, its main container and resources."""

    @abc.abstractmethod
    def apply(self, spec: KubernetesDriverSpec) -> KubernetesDriverSpec:
        """Return `spec` with this step's configuration applied."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class HadoopConfigurationStep(abc.ABC):
    """A step contributing to the Hadoop configuration of the driver."""

    @abc.abstractmethod
    def apply(self, spec: HadoopConfigSpec) -> HadoopConfigSpec:
        """Return `spec` with this step's configuration applied."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
