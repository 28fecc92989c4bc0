#!/usr/bin/env python3
"""
security
========

Submodule implementing Hadoop token material, the identity provider used to
obtain delegation tokens for a job user and the token renewal scheduler.
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

from .provider import Identity, IdentityProvider, KerberosIdentityProvider  # noqa: F401
from .renewal import RENEWAL_INTERVAL_NEVER, compute_renewal_interval  # noqa: F401
from .tokens import Credentials, DelegationTokenIdentifier, Token  # noqa: F401
