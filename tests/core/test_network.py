"""Tests for stagewise.core.network — Network enum and NetworkFilter predicates."""

from __future__ import annotations

import pytest

from stagewise.core.errors import ConfigError, UnknownNetworkError
from stagewise.core.network import Network, any_network, except_, live_only, local_only, only


class TestNetwork:
    @pytest.mark.parametrize("value", ["localhost", "LOCALHOST", " localhost ", Network.LOCALHOST])
    def test_parse(self, value):
        assert Network.parse(value) is Network.LOCALHOST

    def test_parse_accepts_dash(self):
        assert Network.parse("matic-staging") is Network.MATIC_STAGING

    def test_parse_unknown(self):
        with pytest.raises(UnknownNetworkError) as exc_info:
            Network.parse("ropsten")
        assert isinstance(exc_info.value, ConfigError)
        assert "ropsten" in str(exc_info.value)

    def test_live_flags(self):
        assert not Network.HARDHAT.live
        assert not Network.LOCALHOST.live
        assert Network.MUMBAI.live
        assert Network.MATIC_STAGING.live
        assert Network.MATIC.live

    def test_local_flags(self):
        assert {n for n in Network if n.local} == {Network.HARDHAT, Network.LOCALHOST}


class TestNetworkFilter:
    def test_any(self):
        assert all(any_network(n) for n in Network)

    def test_local_only(self):
        assert local_only(Network.HARDHAT)
        assert local_only(Network.LOCALHOST)
        assert not local_only(Network.MUMBAI)
        assert not local_only(Network.MATIC)

    def test_live_only(self):
        assert live_only(Network.MATIC)
        assert not live_only(Network.HARDHAT)

    def test_only(self):
        f = only("mumbai", Network.MATIC)
        assert f(Network.MUMBAI)
        assert f(Network.MATIC)
        assert not f(Network.LOCALHOST)
        assert f.label == "only[matic,mumbai]"

    def test_except(self):
        f = except_(Network.MATIC)
        assert not f(Network.MATIC)
        assert f(Network.MUMBAI)
        assert f.label == "except[matic]"

    def test_only_rejects_unknown_network(self):
        with pytest.raises(UnknownNetworkError):
            only("ropsten")

    def test_or(self):
        f = local_only | only(Network.MUMBAI)
        assert f(Network.HARDHAT)
        assert f(Network.MUMBAI)
        assert not f(Network.MATIC)
        assert f.label == "(local | only[mumbai])"

    def test_and(self):
        f = live_only & except_(Network.MATIC)
        assert f(Network.MUMBAI)
        assert not f(Network.MATIC)
        assert not f(Network.LOCALHOST)

    def test_labels(self):
        assert any_network.label == "any"
        assert local_only.label == "local"
        assert live_only.label == "live"
