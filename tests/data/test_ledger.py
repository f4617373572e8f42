from datetime import date
from decimal import Decimal

from recovery_plans.data.base import Ledger
from recovery_plans.data.ledger import SqlLedger
from recovery_plans.models.ledger import LedgerEntry, LedgerEntryKind


def _entry(kind, amount, case_id="case-001", on=date(2024, 2, 1)):
    return LedgerEntry(case_id=case_id, kind=kind, amount=Decimal(amount), entry_date=on, description="test")


class TestSqlLedger:
    async def test_implements_ledger(self, session):
        assert isinstance(SqlLedger(session), Ledger)

    async def test_post_returns_reference(self, session):
        ledger = SqlLedger(session)
        ref = await ledger.post(_entry(LedgerEntryKind.PRINCIPAL_RECOVERY, "1000.00"))
        record = await ledger.get(ref)
        assert record.amount == Decimal("1000.00")
        assert record.kind is LedgerEntryKind.PRINCIPAL_RECOVERY

    async def test_total_by_kind_and_case(self, session):
        ledger = SqlLedger(session)
        await ledger.post(_entry(LedgerEntryKind.PRINCIPAL_RECOVERY, "1000.00"))
        await ledger.post(_entry(LedgerEntryKind.PRINCIPAL_RECOVERY, "999.99"))
        await ledger.post(_entry(LedgerEntryKind.INTEREST_RECOVERY, "61.15"))
        await ledger.post(_entry(LedgerEntryKind.PRINCIPAL_RECOVERY, "500.00", case_id="case-002"))

        assert await ledger.total("case-001", LedgerEntryKind.PRINCIPAL_RECOVERY) == Decimal("1999.99")
        assert await ledger.total("case-001", LedgerEntryKind.INTEREST_RECOVERY) == Decimal("61.15")
        assert await ledger.total("case-003", LedgerEntryKind.PRINCIPAL_RECOVERY) == Decimal("0")

    async def test_list_entries_filters_kind(self, session):
        ledger = SqlLedger(session)
        await ledger.post(_entry(LedgerEntryKind.PRINCIPAL_ENTRY, "12000.00", on=date(2024, 1, 1)))
        await ledger.post(_entry(LedgerEntryKind.PRINCIPAL_RECOVERY, "1000.00"))
        assert len(await ledger.list_entries("case-001")) == 2
        entries = await ledger.list_entries("case-001", LedgerEntryKind.PRINCIPAL_ENTRY)
        assert [e.amount for e in entries] == [Decimal("12000.00")]

    async def test_delete(self, session):
        ledger = SqlLedger(session)
        ref = await ledger.post(_entry(LedgerEntryKind.PRINCIPAL_RECOVERY, "1000.00"))
        assert await ledger.delete(ref) is True
        assert await ledger.get(ref) is None
        assert await ledger.delete(ref) is False

    async def test_malformed_reference(self, session):
        ledger = SqlLedger(session)
        assert await ledger.get("not-a-uuid") is None
        assert await ledger.delete("not-a-uuid") is False
