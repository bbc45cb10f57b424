import pytest
from pydantic import ValidationError

from predictpool import schemas
from predictpool.domain import Bet, Direction, Outcome, Round
from predictpool.services.settlement import SettlementReport

from conftest import CLOSE_TIME


def test_round_view_from_domain_record():
    round_ = Round(
        round_id=1,
        asset="BTC",
        open_price=50_000,
        close_time=CLOSE_TIME,
        close_price=51_000,
        total_up=300,
        total_down=2**120,
        settled=True,
        outcome=Outcome.UP,
        net_pool=760,
        winning_total=300,
    )
    payload = schemas.RoundView.model_validate(round_).model_dump(mode="json")
    assert payload["outcome"] == "up"
    assert payload["total_down"] == 2**120
    assert payload["settled"] is True


def test_settlement_view_nests_round():
    round_ = Round(round_id=2, asset="BTC", open_price=1, close_time=CLOSE_TIME, settled=True)
    view = schemas.SettlementView.model_validate(SettlementReport(round=round_, total_pool=0, fee=0))
    assert view.round.round_id == 2


def test_bet_view_serialises_direction():
    bet = Bet(round_id=1, participant="alice", direction=Direction.DOWN, wager=10, claimed=True)
    assert schemas.BetView.model_validate(bet).model_dump(mode="json") == {
        "round_id": 1,
        "participant": "alice",
        "direction": "down",
        "wager": 10,
        "claimed": True,
    }


def test_open_round_request_validation():
    request = schemas.OpenRoundRequest(round_id=0, asset=" BTC ", close_time=CLOSE_TIME)
    assert request.asset == "BTC"

    for bad in (
        {"round_id": -1, "asset": "BTC", "close_time": CLOSE_TIME},
        {"round_id": 2**63, "asset": "BTC", "close_time": CLOSE_TIME},
        {"round_id": 1, "asset": "   ", "close_time": CLOSE_TIME},
    ):
        with pytest.raises(ValidationError):
            schemas.OpenRoundRequest(**bad)


def test_place_bet_request_keeps_raw_direction():
    assert schemas.PlaceBetRequest(direction=0, wager=10).direction == 0
    assert schemas.PlaceBetRequest(direction="Up", wager=10).direction == "Up"
    assert schemas.PlaceBetRequest(direction=True, wager="300").direction is True
    assert schemas.PlaceBetRequest(direction="down", wager="300").wager == "300"


def test_round_view_hides_outcome_until_settled():
    open_round = Round(
        round_id=3, asset="BTC", open_price=50_000, close_time=CLOSE_TIME, outcome=Outcome.UP
    )
    assert schemas.RoundView.model_validate(open_round).outcome is None

    settled = Round(
        round_id=3,
        asset="BTC",
        open_price=50_000,
        close_time=CLOSE_TIME,
        settled=True,
        outcome=Outcome.FLAT,
        is_push=True,
    )
    assert schemas.RoundView.model_validate(settled).outcome is Outcome.FLAT
