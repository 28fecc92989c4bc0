"""Tests for the token renewal interval computation."""

import logging

from conftest import FakeIdentityProvider, make_token

from reskube.hadoop.config import HadoopConfig
from reskube.security.renewal import RENEWAL_INTERVAL_NEVER, compute_renewal_interval


class TestComputeRenewalInterval:
    """Tests for compute_renewal_interval."""

    def test_minimum_of_renewable_tokens(self, caplog):
        """A failing renewal is skipped, the rest yield the minimum."""
        tokens = [
            make_token(issue_date=0, sequence_number=1),
            make_token(issue_date=0, sequence_number=2),
            make_token(issue_date=0, sequence_number=3),
        ]
        provider = FakeIdentityProvider(
            renewals={1: 3_600_000, 2: 1_800_000, 3: RuntimeError("renewer mismatch")}
        )
        with caplog.at_level(logging.WARNING, logger="reskube"):
            interval = compute_renewal_interval(tokens, HadoopConfig(), provider)
        assert interval == 1_800_000
        assert "renewer mismatch" in caplog.text

    def test_interval_is_relative_to_issue_date(self):
        tokens = [make_token(issue_date=1_000, sequence_number=1)]
        provider = FakeIdentityProvider(renewals={1: 86_401_000})
        assert compute_renewal_interval(tokens, HadoopConfig(), provider) == 86_400_000

    def test_non_delegation_tokens_are_not_renewed(self):
        provider = FakeIdentityProvider(renewals={})
        tokens = [make_token(kind="kafka")]
        assert compute_renewal_interval(tokens, HadoopConfig(), provider) is None
        assert provider.calls == []

    def test_no_tokens(self):
        assert compute_renewal_interval([], HadoopConfig(), FakeIdentityProvider()) is None

    def test_all_renewals_fail(self):
        provider = FakeIdentityProvider(renewals={1: ValueError("expired")})
        tokens = [make_token(sequence_number=1)]
        assert compute_renewal_interval(tokens, HadoopConfig(), provider) is None

    def test_never_sentinel(self):
        assert RENEWAL_INTERVAL_NEVER == 2**63 - 1
