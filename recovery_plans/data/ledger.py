"""SQL-backed financial ledger sharing the caller's session (and transaction)."""

import logging
import uuid
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recovery_plans.models.db import LedgerEntryRecord
from recovery_plans.models.ledger import LedgerEntry, LedgerEntryKind

logger = logging.getLogger(__name__)


class SqlLedger:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def post(self, entry: LedgerEntry) -> str:
        record = LedgerEntryRecord(
            case_id=entry.case_id,
            kind=entry.kind,
            amount=entry.amount,
            entry_date=entry.entry_date,
            source_installment_id=entry.source_installment_id,
            description=entry.description,
        )
        self.session.add(record)
        await self.session.flush()
        logger.debug("Posted %s %s for case %s", entry.kind.value, entry.amount, entry.case_id)
        return str(record.id)

    async def get(self, reference: str) -> LedgerEntryRecord | None:
        try:
            key = uuid.UUID(reference)
        except ValueError:
            logger.warning("Malformed ledger reference %r", reference)
            return None
        return await self.session.get(LedgerEntryRecord, key)

    async def delete(self, reference: str) -> bool:
        record = await self.get(reference)
        if record is None:
            return False
        await self.session.delete(record)
        await self.session.flush()
        return True

    async def list_entries(self, case_id: str, kind: LedgerEntryKind | None = None) -> list[LedgerEntryRecord]:
        stmt = select(LedgerEntryRecord).where(LedgerEntryRecord.case_id == case_id)
        if kind is not None:
            stmt = stmt.where(LedgerEntryRecord.kind == kind)
        stmt = stmt.order_by(LedgerEntryRecord.entry_date, LedgerEntryRecord.created_at)
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def total(self, case_id: str, kind: LedgerEntryKind) -> Decimal:
        entries = await self.list_entries(case_id, kind)
        return sum((e.amount for e in entries), Decimal("0"))
