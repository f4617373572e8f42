from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum


class LedgerEntryKind(Enum):
    PRINCIPAL_RECOVERY = "principal_recovery"
    INTEREST_RECOVERY = "interest_recovery"
    PRINCIPAL_ENTRY = "principal_entry"


@dataclass(frozen=True)
class LedgerEntry:
    case_id: str
    kind: LedgerEntryKind
    amount: Decimal
    entry_date: date
    source_installment_id: str | None = None
    description: str = ""
