"""Token ledgers used to escrow wagers and release payouts."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager, nullcontext

from sqlalchemy import select
from sqlalchemy.orm import Session

from predictpool.domain.arithmetic import checked_add, checked_sub
from predictpool.errors import InsufficientBalance, InvalidAmount
from predictpool.models import TokenBalanceRecord


def _require_positive(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount(f"Transfer amount must be a positive integer, got {amount!r}")


class InMemoryTokenLedger:
    """Balances held in a dict; ``atomic`` restores them if the block raises."""

    def __init__(self, token: str = "XLM") -> None:
        self.token = token
        self._balances: dict[str, int] = {}
        self._depth = 0

    def balance(self, account: str) -> int:
        return self._balances.get(account, 0)

    def mint(self, account: str, amount: int) -> None:
        _require_positive(amount)
        self._balances[account] = checked_add(self.balance(account), amount)

    def transfer(self, source: str, destination: str, amount: int) -> None:
        _require_positive(amount)
        available = self.balance(source)
        if available < amount:
            raise InsufficientBalance(
                f"{source} holds {available} {self.token}, needs {amount}",
                account=source,
                available=available,
                requested=amount,
            )
        self._balances[source] = checked_sub(available, amount)
        self._balances[destination] = checked_add(self.balance(destination), amount)

    @contextmanager
    def atomic(self) -> Iterator[None]:
        if self._depth:
            yield
            return

        snapshot = dict(self._balances)
        self._depth += 1
        try:
            yield
        except Exception:
            self._balances = snapshot
            raise
        finally:
            self._depth -= 1


class SqlTokenLedger:
    """Balances stored alongside the ledger tables in the same session.

    Commits are owned by the ledger store's unit of work, so escrow movements
    and round bookkeeping land in one database transaction.
    """

    def __init__(self, session: Session, token: str) -> None:
        self._session = session
        self.token = token

    def balance(self, account: str) -> int:
        record = self._session.get(TokenBalanceRecord, (self.token, account))
        return record.balance if record else 0

    def mint(self, account: str, amount: int) -> None:
        _require_positive(amount)
        record = self._lock_accounts(account)[account]
        record.balance = checked_add(record.balance, amount)
        self._session.flush()

    def transfer(self, source: str, destination: str, amount: int) -> None:
        _require_positive(amount)
        records = self._lock_accounts(source, destination)
        source_record = records[source]
        if source_record.balance < amount:
            raise InsufficientBalance(
                f"{source} holds {source_record.balance} {self.token}, needs {amount}",
                account=source,
                available=source_record.balance,
                requested=amount,
            )
        destination_record = records[destination]
        source_record.balance = checked_sub(source_record.balance, amount)
        destination_record.balance = checked_add(destination_record.balance, amount)
        self._session.flush()

    def atomic(self) -> AbstractContextManager[None]:
        return nullcontext()

    def _lock_accounts(self, *accounts: str) -> dict[str, TokenBalanceRecord]:
        """Load balance rows with FOR UPDATE, creating any that are missing.

        Rows are locked in account order so two transfers touching the same
        pair of accounts cannot deadlock.
        """

        wanted = sorted(set(accounts))
        query = (
            select(TokenBalanceRecord)
            .where(
                TokenBalanceRecord.token == self.token,
                TokenBalanceRecord.account.in_(wanted),
            )
            .order_by(TokenBalanceRecord.account)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        records = {record.account: record for record in self._session.execute(query).scalars()}
        for account in wanted:
            if account not in records:
                record = TokenBalanceRecord(token=self.token, account=account, balance=0)
                self._session.add(record)
                records[account] = record
        return records


__all__ = ["InMemoryTokenLedger", "SqlTokenLedger"]
