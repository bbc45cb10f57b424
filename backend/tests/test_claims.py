"""End-to-end rounds: wagers, settlement and claims against in-memory adapters."""

import pytest

from predictpool.adapters import CallerAuthorizer
from predictpool.domain import Bet, Claimed, Direction, Outcome, Round
from predictpool.errors import (
    AlreadyClaimed,
    BetNotFound,
    InsufficientBalance,
    NoPayout,
    NotAuthorized,
    NotInitialized,
    NotSettled,
    RoundNotFound,
)
from predictpool.services.claims import compute_payout

from conftest import CLOSE_TIME, ESCROW, SETTLE_AT, STARTING_BALANCE, at


def _settled_round(**overrides) -> Round:
    values = dict(
        round_id=1,
        asset="BTC",
        open_price=50_000,
        close_time=CLOSE_TIME,
        close_price=51_000,
        total_up=500,
        total_down=500,
        settled=True,
        outcome=Outcome.UP,
        is_push=False,
        net_pool=950,
        winning_total=500,
    )
    values.update(overrides)
    return Round(**values)


def test_compute_payout_rules():
    winner = Bet(round_id=1, participant="alice", direction=Direction.UP, wager=300)
    loser = Bet(round_id=1, participant="bob", direction=Direction.DOWN, wager=500)

    assert compute_payout(_settled_round(), winner) == 570
    assert compute_payout(_settled_round(), loser) == 0
    assert compute_payout(_settled_round(is_push=True, net_pool=0, winning_total=0), loser) == 500


def test_scenario_up_wins(market, btc_round, settle_at, token_ledger, audit_sink):
    market.place_prediction("alice", 1, "up", 300)
    market.place_prediction("bob", 1, "down", 500)
    settle_at(51_000)
    market.settle_round(1)

    assert market.claim("alice", 1) == 760
    assert token_ledger.balance("alice") == STARTING_BALANCE - 300 + 760
    assert market.get_bet(1, "alice").claimed is True
    assert audit_sink.events[-1] == Claimed(round_id=1, participant="alice", payout=760)

    with pytest.raises(NoPayout):
        market.claim("bob", 1)
    assert market.get_bet(1, "bob").claimed is False
    assert token_ledger.balance(ESCROW) == 40


def test_scenario_down_wins(market, btc_round, settle_at, token_ledger):
    market.place_prediction("alice", 1, "up", 400)
    market.place_prediction("bob", 1, "down", 600)
    settle_at(49_000)
    market.settle_round(1)

    round_ = market.get_round(1)
    assert (round_.outcome, round_.net_pool, round_.winning_total) == (Outcome.DOWN, 950, 600)
    assert market.claim("bob", 1) == 950
    with pytest.raises(NoPayout):
        market.claim("alice", 1)


def test_scenario_one_sided_refund(market, btc_round, settle_at, token_ledger):
    market.place_prediction("alice", 1, "up", 500)
    settle_at(51_000)
    market.settle_round(1)

    assert market.get_round(1).is_push is True
    assert market.claim("alice", 1) == 500
    assert token_ledger.balance("alice") == STARTING_BALANCE
    assert token_ledger.balance(ESCROW) == 0


def test_scenario_both_bet_down_refunded(market, btc_round, settle_at, token_ledger):
    market.place_prediction("alice", 1, "down", 300)
    market.place_prediction("bob", 1, "down", 700)
    settle_at(49_000)
    market.settle_round(1)

    assert market.claim("alice", 1) == 300
    assert market.claim("bob", 1) == 700
    assert token_ledger.balance("alice") == STARTING_BALANCE
    assert token_ledger.balance("bob") == STARTING_BALANCE


def test_scenario_flat_market_push(market, btc_round, settle_at, token_ledger):
    market.place_prediction("alice", 1, "up", 300)
    market.place_prediction("bob", 1, "down", 500)
    settle_at(50_000)
    market.settle_round(1)

    round_ = market.get_round(1)
    assert round_.outcome is Outcome.FLAT
    assert round_.is_push is True
    assert market.claim("alice", 1) == 300
    assert market.claim("bob", 1) == 500
    assert token_ledger.balance(ESCROW) == 0


def test_scenario_proportional_split(market, btc_round, settle_at, token_ledger):
    market.place_prediction("alice", 1, "up", 300)
    market.place_prediction("carol", 1, "up", 200)
    market.place_prediction("bob", 1, "down", 500)
    settle_at(51_000)
    market.settle_round(1)

    assert market.claim("alice", 1) == 570
    assert market.claim("carol", 1) == 380
    with pytest.raises(NoPayout):
        market.claim("bob", 1)
    assert token_ledger.balance(ESCROW) == 50


def test_sole_winner_takes_net_pool(market, btc_round, settle_at, token_ledger):
    market.place_prediction("alice", 1, "up", 300)
    market.place_prediction("bob", 1, "down", 700)
    settle_at(51_000)
    market.settle_round(1)

    assert market.claim("alice", 1) == 950
    assert token_ledger.balance("alice") == STARTING_BALANCE - 300 + 950


def test_two_rounds_are_independent(market, clock, price_feed, token_ledger):
    market.open_round(1, "BTC", CLOSE_TIME)
    market.place_prediction("alice", 1, "up", 100)
    market.place_prediction("bob", 1, "down", 100)

    clock.set(SETTLE_AT)
    price_feed.set_price("BTC", 51_000)
    market.settle_round(1)
    market.open_round(2, "BTC", at(4_000))
    market.place_prediction("alice", 2, "down", 100)
    market.place_prediction("bob", 2, "up", 100)

    clock.set(at(5_000))
    price_feed.set_price("BTC", 50_500)
    market.settle_round(2)

    assert market.claim("alice", 1) == 190
    assert market.claim("alice", 2) == 190
    with pytest.raises(NoPayout):
        market.claim("bob", 1)
    with pytest.raises(NoPayout):
        market.claim("bob", 2)
    assert token_ledger.balance("alice") == STARTING_BALANCE + 180


def test_second_claim_fails(market, btc_round, settle_at, token_ledger):
    market.place_prediction("alice", 1, "up", 300)
    market.place_prediction("bob", 1, "down", 500)
    settle_at(51_000)
    market.settle_round(1)
    market.claim("alice", 1)

    with pytest.raises(AlreadyClaimed):
        market.claim("alice", 1)
    assert token_ledger.balance("alice") == STARTING_BALANCE - 300 + 760


def test_claim_before_settlement(market, btc_round):
    market.place_prediction("alice", 1, "up", 300)
    with pytest.raises(NotSettled):
        market.claim("alice", 1)


def test_claim_without_bet(market, btc_round, settle_at):
    settle_at(51_000)
    market.settle_round(1)
    with pytest.raises(BetNotFound):
        market.claim("dave", 1)


def test_claim_missing_round(market):
    with pytest.raises(RoundNotFound):
        market.claim("alice", 3)


def test_claim_requires_participant_authorization(market, btc_round, settle_at):
    market.place_prediction("alice", 1, "up", 300)
    settle_at(51_000)
    market.settle_round(1)

    with pytest.raises(NotAuthorized):
        market.acting_as(CallerAuthorizer("bob")).claim("alice", 1)
    assert market.acting_as(CallerAuthorizer("alice")).claim("alice", 1) == 300


def test_claim_requires_initialized_market(uninitialized_market):
    with pytest.raises(NotInitialized):
        uninitialized_market.claim("alice", 1)


def test_failed_payout_transfer_keeps_bet_unclaimed(market, btc_round, settle_at, token_ledger):
    market.place_prediction("alice", 1, "up", 300)
    market.place_prediction("bob", 1, "down", 500)
    settle_at(51_000)
    market.settle_round(1)

    # Drain escrow out of band so the payout transfer fails.
    token_ledger.transfer(ESCROW, "dave", 800)
    with pytest.raises(InsufficientBalance):
        market.claim("alice", 1)

    assert market.get_bet(1, "alice").claimed is False


def test_get_bet_missing(market, btc_round):
    with pytest.raises(BetNotFound):
        market.get_bet(1, "nobody")
