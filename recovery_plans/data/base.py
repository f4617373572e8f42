"""Protocol definitions for the engine's external collaborators.

The rate table is read-only reference data; the ledger is the firm's
financial movements register, which only the payment bridge writes to.
"""

from datetime import date
from decimal import Decimal
from typing import Protocol, runtime_checkable

from recovery_plans.models.ledger import LedgerEntry, LedgerEntryKind
from recovery_plans.models.terms import InterestRate, RateType


@runtime_checkable
class RateSource(Protocol):
    async def find_candidates(self, rate_type: RateType, reference_date: date) -> list[InterestRate]:
        """Rows of the given type that could apply on the reference date."""
        ...


@runtime_checkable
class Ledger(Protocol):
    async def post(self, entry: LedgerEntry) -> str:
        """Record an entry and return its reference."""
        ...

    async def delete(self, reference: str) -> bool:
        """Remove an entry. Returns False if it no longer exists."""
        ...

    async def total(self, case_id: str, kind: LedgerEntryKind) -> Decimal:
        """Sum of the case's entries of the given kind."""
        ...
