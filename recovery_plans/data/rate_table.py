"""SQL-backed statutory rate table."""

import uuid
from datetime import date

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from recovery_plans.models.db import InterestRateRecord
from recovery_plans.models.terms import InterestRate, RateType


class SqlRateTable:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_candidates(self, rate_type: RateType, reference_date: date) -> list[InterestRate]:
        """Rows of the type already in force on the reference date (valid or expired)."""
        stmt = (
            select(InterestRateRecord)
            .where(InterestRateRecord.rate_type == rate_type)
            .where(InterestRateRecord.valid_from <= reference_date)
            .order_by(InterestRateRecord.valid_from.desc(), InterestRateRecord.id)
        )
        result = await self.session.execute(stmt)
        return [r.to_domain() for r in result.scalars()]

    async def find_overlapping(
        self, rate_type: RateType, valid_from: date, valid_to: date | None
    ) -> list[InterestRateRecord]:
        """Rows of the same type whose validity window intersects [valid_from, valid_to]."""
        stmt = select(InterestRateRecord).where(
            InterestRateRecord.rate_type == rate_type,
            or_(InterestRateRecord.valid_to.is_(None), InterestRateRecord.valid_to >= valid_from),
        )
        if valid_to is not None:
            stmt = stmt.where(InterestRateRecord.valid_from <= valid_to)
        result = await self.session.execute(stmt.order_by(InterestRateRecord.valid_from))
        return list(result.scalars())

    async def list_rates(self, rate_type: RateType | None = None) -> list[InterestRateRecord]:
        stmt = select(InterestRateRecord)
        if rate_type is not None:
            stmt = stmt.where(InterestRateRecord.rate_type == rate_type)
        stmt = stmt.order_by(InterestRateRecord.rate_type, InterestRateRecord.valid_from.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def current_rates(self, on: date) -> list[InterestRateRecord]:
        stmt = (
            select(InterestRateRecord)
            .where(InterestRateRecord.valid_from <= on)
            .where(or_(InterestRateRecord.valid_to.is_(None), InterestRateRecord.valid_to >= on))
            .order_by(InterestRateRecord.rate_type, InterestRateRecord.valid_from.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def find_expiring(self, on: date, until: date) -> list[InterestRateRecord]:
        """Rows whose window closes between the two dates, both included."""
        stmt = (
            select(InterestRateRecord)
            .where(InterestRateRecord.valid_to.is_not(None))
            .where(InterestRateRecord.valid_to >= on, InterestRateRecord.valid_to <= until)
            .order_by(InterestRateRecord.valid_to, InterestRateRecord.rate_type)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def get(self, rate_id: uuid.UUID) -> InterestRateRecord | None:
        return await self.session.get(InterestRateRecord, rate_id)

    async def add(self, rate: InterestRate) -> InterestRateRecord:
        record = InterestRateRecord(
            rate_type=rate.rate_type,
            percentage=rate.percentage,
            valid_from=rate.valid_from,
            valid_to=rate.valid_to,
            decree_reference=rate.decree_reference,
            notes=rate.notes,
        )
        self.session.add(record)
        await self.session.flush()
        return record

    async def update(self, record: InterestRateRecord, changes: dict) -> InterestRateRecord:
        for field, value in changes.items():
            setattr(record, field, value)
        await self.session.flush()
        return record

    async def remove(self, record: InterestRateRecord) -> None:
        await self.session.delete(record)
        await self.session.flush()

    async def count(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(InterestRateRecord))
        return result.scalar_one()
