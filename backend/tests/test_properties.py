"""Pool accounting holds for randomly generated rounds."""

import random

import pytest

from predictpool.errors import MarketError, NoPayout

from conftest import BTC_OPEN, ESCROW, PLAYERS, STARTING_BALANCE


def _play_round(market, rng: random.Random, settle_at) -> dict[str, int]:
    wagers: dict[str, int] = {}
    for player in PLAYERS:
        direction = rng.choice(["up", "down", None])
        if direction is None:
            continue
        wager = rng.randint(1, 6_000)
        try:
            market.place_prediction(player, 1, direction, wager)
        except MarketError:
            continue
        wagers[player] = wager

    settle_at(BTC_OPEN + rng.choice([-250, 0, 250]))
    market.settle_round(1)
    return wagers


@pytest.mark.parametrize("seed", range(25))
def test_pool_accounting(seed, market, btc_round, settle_at, token_ledger):
    rng = random.Random(seed)
    wagers = _play_round(market, rng, settle_at)

    round_ = market.get_round(1)
    pool = round_.total_up + round_.total_down
    assert pool == sum(wagers.values())
    assert token_ledger.balance(ESCROW) == pool

    payouts: dict[str, int] = {}
    for player in wagers:
        try:
            payouts[player] = market.claim(player, 1)
        except NoPayout:
            payouts[player] = 0

    assert all(payout >= 0 for payout in payouts.values())
    if round_.is_push:
        assert sum(payouts.values()) == pool
        assert payouts == wagers
    else:
        assert sum(payouts.values()) <= round_.net_pool
        assert round_.net_pool <= pool

    total_balance = sum(token_ledger.balance(player) for player in PLAYERS)
    assert total_balance + token_ledger.balance(ESCROW) == STARTING_BALANCE * len(PLAYERS)


@pytest.mark.parametrize("seed", range(10))
def test_rejected_wagers_leave_state_unchanged(seed, market, btc_round, token_ledger):
    rng = random.Random(seed)
    market.place_prediction("alice", 1, "up", 100)
    before = (market.get_round(1), {player: token_ledger.balance(player) for player in PLAYERS})

    bad_calls = [
        ("alice", "down", 200),
        ("bob", "sideways", 200),
        ("bob", "up", rng.randint(-100, 9)),
        ("bob", "up", rng.randint(10_001, 20_000)),
        ("carol", "down", STARTING_BALANCE + rng.randint(1, 4_000)),
    ]
    for participant, direction, wager in bad_calls:
        with pytest.raises(MarketError):
            market.place_prediction(participant, 1, direction, wager)

    after = (market.get_round(1), {player: token_ledger.balance(player) for player in PLAYERS})
    assert after == before
