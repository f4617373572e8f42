"""Administration and monitoring of the statutory rate table."""

import logging
import uuid
from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from recovery_plans.data.rate_table import SqlRateTable
from recovery_plans.data.seed_rates import DEFAULT_RATES
from recovery_plans.db import as_uuid, transaction
from recovery_plans.engine.interest import select_base_rate
from recovery_plans.engine.schedule import RATE_PLACES
from recovery_plans.errors import NotFoundError, StateConflictError, ValidationError
from recovery_plans.models.db import InterestRateRecord
from recovery_plans.models.terms import InterestRate, RateType
from recovery_plans.schemas import CreateRateRequest, UpdateRateRequest

logger = logging.getLogger(__name__)

EXPIRY_NOTICE_DAYS = 30


def _check_rate(rate: InterestRate) -> None:
    if rate.valid_to is not None and rate.valid_from > rate.valid_to:
        raise ValidationError("valid_from cannot be after valid_to")
    if not Decimal("0") <= rate.percentage <= Decimal("100"):
        raise ValidationError(f"Percentage must be between 0 and 100, got {rate.percentage}")
    if rate.percentage != rate.percentage.quantize(RATE_PLACES):
        raise ValidationError(f"Percentage allows at most 4 decimal places, got {rate.percentage}")


class RateTableService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.table = SqlRateTable(session)

    async def _check_overlap(self, rate: InterestRate, exclude_id: uuid.UUID | None = None) -> None:
        overlapping = [
            r for r in await self.table.find_overlapping(rate.rate_type, rate.valid_from, rate.valid_to)
            if r.id != exclude_id
        ]
        if overlapping:
            first = overlapping[0]
            until = first.valid_to.isoformat() if first.valid_to else "open-ended"
            raise StateConflictError(
                f"{rate.rate_type.value} rate overlaps an existing window",
                f"{first.valid_from.isoformat()} - {until}",
            )

    async def add_rate(
        self, rate: InterestRate | CreateRateRequest, allow_overlap: bool = False
    ) -> InterestRateRecord:
        """Insert a rate row.

        Overlapping windows of the same type are refused unless explicitly
        allowed; the resolver copes with them either way.
        """
        if isinstance(rate, CreateRateRequest):
            rate = rate.to_domain()
        _check_rate(rate)

        async with transaction(self.session):
            if not allow_overlap:
                await self._check_overlap(rate)
            record = await self.table.add(rate)

        logger.info("Added %s rate %s%% from %s", rate.rate_type.value, rate.percentage, rate.valid_from)
        return record

    async def update_rate(
        self, rate_id: uuid.UUID | str, changes: UpdateRateRequest, allow_overlap: bool = False
    ) -> InterestRateRecord:
        """Change a rate row in place, typically to close an open-ended window.

        The merged row goes through the same checks as a new one; its own
        current window never counts as an overlap. Plans already generated
        keep the rate they were created with.
        """
        updates = changes.changes()
        async with transaction(self.session):
            record = await self.get_rate(rate_id)
            merged = replace(record.to_domain(), **updates)
            _check_rate(merged)
            if not allow_overlap:
                await self._check_overlap(merged, exclude_id=record.id)
            await self.table.update(record, updates)

        logger.info("Updated %s rate from %s: %s", record.rate_type.value, record.valid_from, ", ".join(updates))
        return record

    async def get_rate(self, rate_id: uuid.UUID | str) -> InterestRateRecord:
        record = await self.table.get(as_uuid(rate_id))
        if record is None:
            raise NotFoundError("Interest rate", rate_id)
        return record

    async def list_rates(self, rate_type: RateType | None = None) -> list[InterestRateRecord]:
        return await self.table.list_rates(rate_type)

    async def current_rates(self, on: date | None = None) -> list[InterestRateRecord]:
        return await self.table.current_rates(on or date.today())

    async def remove_rate(self, rate_id: uuid.UUID | str) -> None:
        async with transaction(self.session):
            record = await self.get_rate(rate_id)
            await self.table.remove(record)
        logger.info("Removed %s rate from %s", record.rate_type.value, record.valid_from)

    # ---- Monitoring ----

    async def expiring_rates(
        self, on: date | None = None, within_days: int = EXPIRY_NOTICE_DAYS
    ) -> list[InterestRateRecord]:
        """Rows whose validity ends within the next ``within_days`` days."""
        on = on or date.today()
        rows = await self.table.find_expiring(on, on + timedelta(days=within_days))
        for row in rows:
            logger.warning(
                "%s rate %s%% expires on %s, publish the next one",
                row.rate_type.value.capitalize(), row.percentage, row.valid_to,
            )
        return rows

    async def missing_rate_types(self, on: date | None = None) -> list[RateType]:
        """Rate types with no usable row on the date.

        A moratory type served only by its expired fallback still counts as
        usable, matching what plan generation would do.
        """
        on = on or date.today()
        missing = []
        for rate_type in RateType:
            candidates = await self.table.find_candidates(rate_type, on)
            selected = select_base_rate(candidates, rate_type, on)
            if selected is None:
                logger.warning("No usable %s rate on %s", rate_type.value, on)
                missing.append(rate_type)
            elif selected[1]:
                logger.warning(
                    "%s rate on %s falls back to the row expired on %s",
                    rate_type.value.capitalize(), on, selected[0].valid_to,
                )
        return missing

    async def seed_default_rates(self) -> int:
        """Load the published legal and moratory rates into an empty table."""
        async with transaction(self.session):
            if await self.table.count():
                logger.info("Rate table already populated, skipping seed")
                return 0
            for rate in DEFAULT_RATES:
                await self.table.add(rate)

        logger.info("Seeded %d statutory rates", len(DEFAULT_RATES))
        return len(DEFAULT_RATES)
