"""SQLAlchemy models registry for the ledger database."""

from .ledger import Base, ProcessedDeposit

__all__ = [
    "Base",
    "ProcessedDeposit",
]
