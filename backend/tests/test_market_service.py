import argparse
from dataclasses import replace

import pytest

from predictpool.adapters import CallerAuthorizer
from predictpool.errors import (
    AlreadyInitialized,
    InvalidConfig,
    NotAuthorized,
    NotInitialized,
    RoundAlreadyExists,
)
from scripts.bootstrap_market import parse_credit

from conftest import ADMIN, CLOSE_TIME


def test_initialize_once(uninitialized_market, market_config):
    assert uninitialized_market.initialize(market_config) == market_config
    assert uninitialized_market.get_config() == market_config

    with pytest.raises(AlreadyInitialized) as exc_info:
        uninitialized_market.initialize(replace(market_config, house_edge_bps=0))
    assert exc_info.value.code == 1
    assert uninitialized_market.get_config().house_edge_bps == 500


def test_get_config_before_initialize(uninitialized_market):
    with pytest.raises(NotInitialized):
        uninitialized_market.get_config()


def test_initialize_requires_admin_authorization(uninitialized_market, market_config):
    with pytest.raises(NotAuthorized):
        uninitialized_market.acting_as(CallerAuthorizer("mallory")).initialize(market_config)

    admin = uninitialized_market.acting_as(CallerAuthorizer(ADMIN))
    admin.initialize(market_config)
    assert uninitialized_market.get_config() == market_config


@pytest.mark.parametrize(
    "overrides",
    [
        {"min_wager": 0},
        {"min_wager": 100, "max_wager": 99},
        {"house_edge_bps": -1},
        {"house_edge_bps": 10_001},
        {"escrow_account": ""},
        {"max_wager": 10.5},
    ],
)
def test_initialize_rejects_invalid_config(uninitialized_market, market_config, overrides):
    with pytest.raises(InvalidConfig) as exc_info:
        uninitialized_market.initialize(replace(market_config, **overrides))
    assert exc_info.value.code == 22
    with pytest.raises(NotInitialized):
        uninitialized_market.get_config()


def test_acting_as_shares_state(market):
    admin = market.acting_as(CallerAuthorizer(ADMIN))
    admin.open_round(1, "BTC", CLOSE_TIME)
    assert market.get_round(1).asset == "BTC"


def test_events_published_only_after_success(market, audit_sink):
    market.open_round(1, "BTC", CLOSE_TIME)
    count = len(audit_sink.events)
    with pytest.raises(RoundAlreadyExists):
        market.open_round(1, "BTC", CLOSE_TIME)
    assert len(audit_sink.events) == count


def test_parse_credit():
    assert parse_credit("alice=5000") == ("alice", 5_000)
    assert parse_credit(" bob = 10 ") == ("bob", 10)
    for raw in ("alice", "=5", "alice=abc", "alice=0"):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_credit(raw)
