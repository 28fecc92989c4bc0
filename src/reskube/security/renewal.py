#!/usr/bin/env python3
"""
security/renewal.py
===================

Computes how long delegation tokens stay valid before they must be renewed.
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

from typing import TYPE_CHECKING

from .. import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..hadoop.config import HadoopConfig
    from .provider import IdentityProvider
    from .tokens import Token

logger = get_logger(__name__)

RENEWAL_INTERVAL_NEVER = 2**63 - 1
"""Renewal interval used if no token can be renewed, tokens are never renewed."""


def compute_renewal_interval(
    tokens: Iterable[Token], conf: HadoopConfig, provider: IdentityProvider
) -> int | None:
    """
    Compute the renewal interval of a set of tokens.

    Every delegation token is renewed once, its interval is the new expiration
    time minus its issue date. Tokens of other kinds are skipped, so are tokens
    whose renewal fails.

    Parameters
    ----------
    tokens : Iterable[Token]
        The tokens to compute the interval for.
    conf : HadoopConfig
        The Hadoop configuration used to renew the tokens.
    provider : IdentityProvider
        The provider renewing the tokens.

    Returns
    -------
    int | None
        The shortest interval in milliseconds, or `None` if no token yields
        one.
    """
    intervals = []
    for token in tokens:
        identifier = token.decode_identifier()
        if identifier is None:
            logger.debug(f"Skipping token of kind '{token.kind}', it is not a delegation token")
            continue
        try:
            new_expiration = provider.renew_token(token, conf)
        except Exception as e:
            logger.warning(f"Could not renew token of kind '{token.kind}': {e}")
            continue

        interval = new_expiration - identifier.issue_date
        logger.info(f"Renewal interval is {interval} for token {token.kind}")
        intervals.append(interval)

    return min(intervals) if intervals else None
