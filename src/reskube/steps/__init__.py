#!/usr/bin/env python3
"""
steps
=====

Submodule implementing the configuration steps assembling the driver pod, its
main container, the Kubernetes resources it depends on and the Spark
properties handed to the driver.
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

from .base import DriverConfigurationStep, HadoopConfigurationStep  # noqa: F401
from .basedriver import BaseDriverConfigurationStep  # noqa: F401
from .credentials import DriverKubernetesCredentialsStep  # noqa: F401
from .dependencies import DependencyResolutionStep  # noqa: F401
from .hadoop import (  # noqa: F401
    HadoopConfigBootstrapStep,
    HadoopConfMounterStep,
    HadoopStepsOrchestrator,
)
from .initcontainer import InitContainerBootstrapStep  # noqa: F401
from .kerberos import (  # noqa: F401
    CredentialSecret,
    HadoopKerberosKeytabResolverStep,
    HadoopKerberosSecretResolverStep,
    RenewalPlan,
)
from .python import PythonStep  # noqa: F401
