"""Adapters for price feeds, fund transfers, authorization and audit sinks."""

from .audit import InMemoryAuditSink, LoggingAuditSink, SqlAuditSink
from .authorization import AllowAllAuthorizer, CallerAuthorizer
from .base import AuditSink, Authorizer, FundsTransfer, PriceFeed
from .price_feed import StaticPriceFeed
from .transfers import InMemoryTokenLedger, SqlTokenLedger

__all__ = [
    "AllowAllAuthorizer",
    "AuditSink",
    "Authorizer",
    "CallerAuthorizer",
    "FundsTransfer",
    "InMemoryAuditSink",
    "InMemoryTokenLedger",
    "LoggingAuditSink",
    "PriceFeed",
    "SqlAuditSink",
    "SqlTokenLedger",
    "StaticPriceFeed",
]
