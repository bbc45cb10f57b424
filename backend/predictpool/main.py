from __future__ import annotations

from typing import Annotated

from fastapi import Depends, FastAPI, Header, Path, Query, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from . import schemas
from .adapters import CallerAuthorizer
from .core.config import settings
from .db import get_db, init_db
from .errors import ErrorCategory, MarketError, NotFoundError
from .services.market_service import PredictionMarket, build_sql_market

app = FastAPI(title="PredictPool API", version="0.1.0", debug=settings.debug)

_STATUS_BY_CATEGORY = {
    ErrorCategory.CONFIGURATION: 503,
    ErrorCategory.AUTHORIZATION: 403,
    ErrorCategory.VALIDATION: 422,
    ErrorCategory.STATE: 409,
    ErrorCategory.ARITHMETIC: 400,
}

_ERROR_RESPONSES = {
    code: {"model": schemas.MarketErrorBody}
    for code in (400, 403, 404, 409, 422, 503)
}

RoundId = Annotated[int, Path(ge=0, le=schemas.ROUND_ID_MAX)]


@app.on_event("startup")
def on_startup() -> None:
    """Initialize database connections when the API boots."""

    init_db()


@app.exception_handler(MarketError)
def _market_error_handler(request: Request, exc: MarketError) -> JSONResponse:
    if isinstance(exc, NotFoundError):
        status_code = 404
    else:
        status_code = _STATUS_BY_CATEGORY[exc.category]
    logger.warning(
        "{} {} rejected with {} ({}): {}",
        request.method,
        request.url.path,
        exc.name,
        exc.code,
        exc,
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "code": exc.code, "error": exc.name},
    )


@app.get("/healthz", tags=["system"])
def healthcheck() -> dict[str, str]:
    """Basic readiness probe consumed by infrastructure monitors."""

    return {"status": "ok"}


def _caller(
    x_caller_id: Annotated[
        str | None,
        Header(description="Identity of the authenticated caller"),
    ] = None,
) -> str:
    return (x_caller_id or "").strip()


def _market_service(caller: str = Depends(_caller), db=Depends(get_db)) -> PredictionMarket:
    """Provide a market that authorizes actions as the request's caller."""

    return build_sql_market(db, authorizer=CallerAuthorizer(caller or None))


@app.get(
    "/config",
    response_model=schemas.MarketConfigView,
    responses=_ERROR_RESPONSES,
    tags=["market"],
)
def get_config(market: PredictionMarket = Depends(_market_service)) -> schemas.MarketConfigView:
    return schemas.MarketConfigView.model_validate(market.get_config())


@app.get("/rounds", response_model=schemas.RoundList, tags=["rounds"])
def list_rounds(
    *,
    settled: Annotated[bool | None, Query(description="Only settled (true) or open (false) rounds")] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
    market: PredictionMarket = Depends(_market_service),
) -> schemas.RoundList:
    rounds = market.list_rounds(settled=settled, limit=limit, offset=offset)
    return schemas.RoundList(
        items=[schemas.RoundView.model_validate(round_) for round_ in rounds],
        limit=limit,
        offset=offset,
    )


@app.post(
    "/rounds",
    response_model=schemas.RoundView,
    status_code=status.HTTP_201_CREATED,
    responses=_ERROR_RESPONSES,
    tags=["rounds"],
)
def open_round(
    payload: schemas.OpenRoundRequest,
    market: PredictionMarket = Depends(_market_service),
) -> schemas.RoundView:
    round_ = market.open_round(payload.round_id, payload.asset, payload.close_time)
    return schemas.RoundView.model_validate(round_)


@app.get(
    "/rounds/{round_id}",
    response_model=schemas.RoundView,
    responses=_ERROR_RESPONSES,
    tags=["rounds"],
)
def get_round(
    round_id: RoundId,
    market: PredictionMarket = Depends(_market_service),
) -> schemas.RoundView:
    return schemas.RoundView.model_validate(market.get_round(round_id))


@app.post(
    "/rounds/{round_id}/bets",
    response_model=schemas.BetView,
    status_code=status.HTTP_201_CREATED,
    responses=_ERROR_RESPONSES,
    tags=["bets"],
)
def place_bet(
    round_id: RoundId,
    payload: schemas.PlaceBetRequest,
    caller: str = Depends(_caller),
    market: PredictionMarket = Depends(_market_service),
) -> schemas.BetView:
    bet = market.place_prediction(caller, round_id, payload.direction, payload.wager)
    return schemas.BetView.model_validate(bet)


@app.get(
    "/rounds/{round_id}/bets/{participant}",
    response_model=schemas.BetView,
    responses=_ERROR_RESPONSES,
    tags=["bets"],
)
def get_bet(
    round_id: RoundId,
    participant: str,
    market: PredictionMarket = Depends(_market_service),
) -> schemas.BetView:
    return schemas.BetView.model_validate(market.get_bet(round_id, participant))


@app.post(
    "/rounds/{round_id}/settle",
    response_model=schemas.SettlementView,
    responses=_ERROR_RESPONSES,
    tags=["rounds"],
)
def settle_round(
    round_id: RoundId,
    market: PredictionMarket = Depends(_market_service),
) -> schemas.SettlementView:
    return schemas.SettlementView.model_validate(market.settle_round(round_id))


@app.post(
    "/rounds/{round_id}/claim",
    response_model=schemas.ClaimView,
    responses=_ERROR_RESPONSES,
    tags=["bets"],
)
def claim(
    round_id: RoundId,
    caller: str = Depends(_caller),
    market: PredictionMarket = Depends(_market_service),
) -> schemas.ClaimView:
    payout = market.claim(caller, round_id)
    return schemas.ClaimView(round_id=round_id, participant=caller, payout=payout)
