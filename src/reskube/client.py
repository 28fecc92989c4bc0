#!/usr/bin/env python3
"""
client.py
=========

Runs the configuration steps of a submission and renders the resulting
Kubernetes resources.

Example
-------

```python
from reskube.client import build_driver_spec, render_resources

spec = build_driver_spec(context)
print(render_resources(spec))
```
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

import copy
from typing import TYPE_CHECKING, Any

import msgspec
from kubernetes import client

from . import get_logger
from .orchestrator import DriverConfigurationStepsOrchestrator
from .spec import KubernetesDriverSpec

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .security.provider import IdentityProvider
    from .steps import DriverConfigurationStep
    from .submission import SubmissionContext

# init logger
logger = get_logger(__name__)


def build_driver_spec(
    context: SubmissionContext,
    steps: Sequence[DriverConfigurationStep] | None = None,
    provider: IdentityProvider | None = None,
) -> KubernetesDriverSpec:
    """
    Apply the configuration steps of a submission in order.

    Parameters
    ----------
    context : SubmissionContext
        The submission.
    steps : Sequence[DriverConfigurationStep], optional
        The steps to apply, by default the ones selected by
        `DriverConfigurationStepsOrchestrator`.
    provider : IdentityProvider, optional
        The provider acquiring delegation tokens, used if `steps` isn't given.

    Returns
    -------
    KubernetesDriverSpec
        The final driver specification.
    """
    if steps is None:
        steps = DriverConfigurationStepsOrchestrator(
            context, provider
        ).get_all_configuration_steps()

    spec = KubernetesDriverSpec.initial(context.conf)
    for step in steps:
        logger.debug(f"Applying configuration step {step!r}")
        spec = step.apply(spec)
    return spec


def resolved_resources(spec: KubernetesDriverSpec) -> list[Any]:
    """
    The Kubernetes resources to create: the driver pod with its main container
    followed by the resources it depends on.
    """
    pod = copy.deepcopy(spec.driver_pod)
    pod.spec.containers = [*(pod.spec.containers or []), copy.deepcopy(spec.driver_container)]
    return [pod, *spec.other_kubernetes_resources]


def render_resources(spec: KubernetesDriverSpec) -> str:
    """Render the resources of `spec` as multi-document YAML."""
    api_client = client.ApiClient()
    documents = [
        msgspec.yaml.encode(api_client.sanitize_for_serialization(resource)).decode("utf-8")
        for resource in resolved_resources(spec)
    ]
    return "---\n".join(documents)
