import argparse
from dataclasses import replace

from loguru import logger

from predictpool.adapters import AllowAllAuthorizer, SqlTokenLedger
from predictpool.core.config import get_settings
from predictpool.db import init_db, session_scope
from predictpool.errors import AlreadyInitialized
from predictpool.services.market_service import build_sql_market, market_config_from_settings


def parse_credit(raw: str) -> tuple[str, int]:
    if not raw or "=" not in raw:
        raise argparse.ArgumentTypeError(f"Expected ACCOUNT=AMOUNT, got {raw!r}")
    account, amount = raw.split("=", 1)
    account = account.strip()
    if not account:
        raise argparse.ArgumentTypeError(f"Missing account in {raw!r}")
    try:
        value = int(amount.strip())
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Amount must be an integer in {raw!r}") from exc
    if value <= 0:
        raise argparse.ArgumentTypeError(f"Amount must be positive in {raw!r}")
    return account, value


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Initialize the prediction market configuration")
    parser.add_argument("--admin", default=None, help="Override MARKET_ADMIN")
    parser.add_argument("--token", default=None, help="Override MARKET_TOKEN")
    parser.add_argument("--oracle", default=None, help="Override MARKET_ORACLE")
    parser.add_argument("--escrow-account", default=None, help="Override ESCROW_ACCOUNT")
    parser.add_argument("--min-wager", type=int, default=None, help="Override MIN_WAGER")
    parser.add_argument("--max-wager", type=int, default=None, help="Override MAX_WAGER")
    parser.add_argument("--house-edge-bps", type=int, default=None, help="Override HOUSE_EDGE_BPS")
    parser.add_argument(
        "--credit",
        action="append",
        default=None,
        type=parse_credit,
        metavar="ACCOUNT=AMOUNT",
        help="Credit token balance to an account (repeatable, e.g. --credit alice=5000)",
    )
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    settings = get_settings()
    init_db()

    overrides = {
        "admin": args.admin,
        "token": args.token,
        "oracle": args.oracle,
        "escrow_account": args.escrow_account,
        "min_wager": args.min_wager,
        "max_wager": args.max_wager,
        "house_edge_bps": args.house_edge_bps,
    }
    config = replace(
        market_config_from_settings(settings),
        **{key: value for key, value in overrides.items() if value is not None},
    )

    with session_scope() as session:
        market = build_sql_market(session, authorizer=AllowAllAuthorizer(), settings=settings)
        try:
            market.initialize(config)
        except AlreadyInitialized:
            config = market.get_config()
            logger.warning("Market already initialized; keeping admin={} token={}", config.admin, config.token)

        ledger = SqlTokenLedger(session, config.token)
        for account, amount in args.credit or ():
            ledger.mint(account, amount)
            logger.info("Credited {} {} to {}", amount, config.token, account)

    logger.info("Market bootstrap complete")


if __name__ == "__main__":
    main()
