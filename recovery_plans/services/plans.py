"""Amortization plan lifecycle.

Flow: terms → rate resolution (rate table) → schedule generation → persist
plan + installments. Later: payments/reversals through the ledger bridge,
closure, reopening, principal entry, deletion.

Every mutating operation is a single transaction: it either fully applies
or leaves nothing behind.
"""

import logging
import uuid
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recovery_plans.data.base import Ledger, RateSource
from recovery_plans.data.rate_table import SqlRateTable
from recovery_plans.db import as_uuid, transaction
from recovery_plans.engine.interest import ResolvedRate, resolve_rate
from recovery_plans.engine.schedule import RATE_PLACES, TWO_PLACES, Schedule, generate_schedule
from recovery_plans.engine.summary import PlanSummary, plan_summary
from recovery_plans.errors import NotFoundError, RateResolutionError, StateConflictError, ValidationError
from recovery_plans.models.db import InstallmentRecord, PlanRecord
from recovery_plans.models.terms import (
    ClosureOutcome,
    FixedInterest,
    LegalInterest,
    MoratoryInterest,
    PlanStatus,
    PlanTerms,
    RateType,
)
from recovery_plans.schemas import ClosePlanRequest, CreatePlanRequest, RegisterPaymentRequest
from recovery_plans.services.payments import PaymentLedgerBridge, require_active

logger = logging.getLogger(__name__)


class PlanService:
    def __init__(
        self,
        session: AsyncSession,
        rate_source: RateSource | None = None,
        ledger: Ledger | None = None,
    ):
        self.session = session
        self.rates = rate_source or SqlRateTable(session)
        self.payments = PaymentLedgerBridge(session, ledger)

    # ---- Generation ----

    async def resolve_interest(self, terms: PlanTerms) -> ResolvedRate | None:
        """Effective rate for the terms, looking up statutory rows when needed."""
        candidates = []
        if isinstance(terms.interest, (LegalInterest, MoratoryInterest)):
            rate_type = RateType(terms.interest.interest_type.value)
            candidates = await self.rates.find_candidates(rate_type, terms.interest_reference_date)
        return resolve_rate(terms, candidates)

    async def preview(self, terms: PlanTerms | CreatePlanRequest) -> tuple[Schedule, ResolvedRate | None]:
        """Compute the schedule without persisting anything."""
        if isinstance(terms, CreatePlanRequest):
            terms = terms.to_terms()
        _validate_terms(terms)

        resolved = await self.resolve_interest(terms)
        if terms.apply_interest and resolved is None:
            raise RateResolutionError(
                terms.interest.interest_type.value,
                terms.interest_reference_date,
            )

        schedule = generate_schedule(
            principal=terms.principal,
            installment_count=terms.installment_count,
            start_date=terms.start_date,
            method=terms.method,
            annual_rate=resolved.rate if resolved else None,
            interest_start_date=terms.interest_start_date,
        )
        return schedule, resolved

    async def create_or_regenerate(self, case_id: str, terms: PlanTerms | CreatePlanRequest) -> PlanRecord:
        """Create the case's plan, replacing any existing one.

        The replaced plan's ledger postings are left untouched.
        """
        if not case_id:
            raise ValidationError("Case id is required")
        if isinstance(terms, CreatePlanRequest):
            terms = terms.to_terms()
        schedule, resolved = await self.preview(terms)

        async with transaction(self.session):
            existing = await self._find_for_case(case_id)
            if existing is not None:
                paid = sum(1 for i in existing.installments if i.paid)
                logger.warning(
                    "Replacing plan %s of case %s (%d paid installments, ledger entries kept)",
                    existing.id, case_id, paid,
                )
                await self.session.delete(existing)
                await self.session.flush()

            plan = PlanRecord.from_terms(case_id, terms, resolved)
            plan.total_interest = schedule.total_interest
            plan.installments = [
                InstallmentRecord(
                    number=d.number,
                    amount=d.amount,
                    principal_share=d.principal_share,
                    interest_share=d.interest_share,
                    due_date=d.due_date,
                    paid=False,
                )
                for d in schedule.installments
            ]
            self.session.add(plan)
            await self.session.flush()

        if resolved is not None and resolved.is_fallback:
            logger.warning("Plan %s of case %s uses an expired rate: %s", plan.id, case_id, resolved.source)
        logger.info(
            "Created plan %s for case %s: %s over %d installments, interest %s",
            plan.id, case_id, terms.principal, terms.installment_count, schedule.total_interest,
        )
        return plan

    # ---- Queries ----

    async def _find_for_case(self, case_id: str) -> PlanRecord | None:
        result = await self.session.execute(select(PlanRecord).where(PlanRecord.case_id == case_id))
        return result.scalar_one_or_none()

    async def get_plan(self, plan_id: uuid.UUID | str) -> PlanRecord:
        plan = await self.session.get(PlanRecord, as_uuid(plan_id))
        if plan is None:
            raise NotFoundError("Plan", plan_id)
        return plan

    async def get_plan_for_case(self, case_id: str) -> PlanRecord | None:
        return await self._find_for_case(case_id)

    async def list_installments(self, plan_id: uuid.UUID | str) -> list[InstallmentRecord]:
        plan = await self.get_plan(plan_id)
        return sorted(plan.installments, key=lambda i: i.number)

    async def plan_statistics(self, plan_id: uuid.UUID | str, as_of: date | None = None) -> PlanSummary:
        plan = await self.get_plan(plan_id)
        return plan_summary(plan.installments, plan.initial_principal, as_of=as_of)

    async def get_receipt_ref(self, installment_id: uuid.UUID | str) -> str:
        installment = await self.payments.get_installment(installment_id)
        if not installment.receipt_ref:
            raise NotFoundError("Receipt of installment", installment_id)
        return installment.receipt_ref

    # ---- Lifecycle ----

    async def close_plan(
        self,
        plan_id: uuid.UUID | str,
        outcome: ClosureOutcome | ClosePlanRequest,
        notes: str | None = None,
        closed_on: date | None = None,
    ) -> PlanRecord:
        """Close an active plan, recording the principal recovered so far."""
        if isinstance(outcome, ClosePlanRequest):
            notes = outcome.notes
            outcome = outcome.outcome

        async with transaction(self.session):
            plan = await self.get_plan(plan_id)
            if plan.status is not PlanStatus.ACTIVE:
                raise StateConflictError("Only active plans can be closed", plan.status.value)

            plan.status = outcome.status
            plan.closure_date = closed_on or date.today()
            plan.recovered_amount = await self.payments.recovered_principal(plan.case_id)
            if notes:
                plan.notes = f"{plan.notes}\n\nClosure: {notes}" if plan.notes else notes
            await self.session.flush()

        logger.info("Plan %s of case %s closed (%s), recovered %s",
                    plan.id, plan.case_id, plan.status.value, plan.recovered_amount)
        return plan

    async def reopen_plan(self, plan_id: uuid.UUID | str) -> PlanRecord:
        """Return a closed plan to active. Paid installments stay paid."""
        async with transaction(self.session):
            plan = await self.get_plan(plan_id)
            if not plan.status.is_closed:
                raise StateConflictError("Only closed plans can be reopened", plan.status.value)

            plan.status = PlanStatus.ACTIVE
            plan.closure_date = None
            plan.recovered_amount = None
            await self.session.flush()

        logger.info("Plan %s of case %s reopened", plan.id, plan.case_id)
        return plan

    async def enter_principal(
        self,
        plan_id: uuid.UUID | str,
        notes: str | None = None,
        entry_date: date | None = None,
    ) -> PlanRecord:
        """Post the initial principal to the ledger, once per plan."""
        async with transaction(self.session):
            plan = await self.get_plan(plan_id)
            if plan.principal_entered:
                raise StateConflictError("Principal already entered", "principal_entered")

            plan.principal_movement_id = await self.payments.post_principal_entry(
                plan, entry_date or date.today(), notes
            )
            plan.principal_entered = True
            await self.session.flush()

        logger.info("Principal %s of plan %s entered in the ledger", plan.initial_principal, plan.id)
        return plan

    async def update_installment_notes(
        self, installment_id: uuid.UUID | str, notes: str | None
    ) -> InstallmentRecord:
        """Annotate an installment of an active plan.

        Amounts, due dates and payment fields are not editable here; payments
        go through register_payment/reverse_payment only.
        """
        async with transaction(self.session):
            installment = await self.payments.get_installment(installment_id)
            require_active(installment.plan, "edit installments")
            installment.notes = notes
            await self.session.flush()

        logger.info("Notes of installment %s/%s of case %s updated",
                    installment.number, installment.plan.installment_count, installment.plan.case_id)
        return installment

    async def delete_plan(self, plan_id: uuid.UUID | str) -> None:
        """Remove the plan and its installments. Ledger entries are not touched."""
        async with transaction(self.session):
            plan = await self.get_plan(plan_id)
            paid = sum(1 for i in plan.installments if i.paid)
            await self.session.delete(plan)
            await self.session.flush()

        if paid or plan.principal_entered:
            logger.warning(
                "Deleted plan %s of case %s with %d paid installments, ledger entries kept",
                plan.id, plan.case_id, paid,
            )
        else:
            logger.info("Deleted plan %s of case %s", plan.id, plan.case_id)

    # ---- Payments ----

    async def register_payment(
        self, installment_id: uuid.UUID | str, request: RegisterPaymentRequest
    ) -> InstallmentRecord:
        return await self.payments.register_payment(
            installment_id,
            payment_date=request.payment_date,
            method=request.method,
            code=request.code,
            notes=request.notes,
            receipt_ref=request.receipt_ref,
        )

    async def reverse_payment(self, installment_id: uuid.UUID | str) -> InstallmentRecord:
        return await self.payments.reverse_payment(installment_id)


def _validate_terms(terms: PlanTerms) -> None:
    if terms.principal <= 0:
        raise ValidationError(f"Principal must be positive, got {terms.principal}")
    if terms.principal != terms.principal.quantize(TWO_PLACES):
        raise ValidationError(f"Principal cannot have fractions of a cent, got {terms.principal}")
    if terms.installment_count < 1:
        raise ValidationError(f"Installment count must be at least 1, got {terms.installment_count}")
    rate = terms.interest.rate if isinstance(terms.interest, FixedInterest) else None
    if rate is not None and rate != rate.quantize(RATE_PLACES):
        raise ValidationError(f"Fixed rate allows at most 4 decimal places, got {rate}")
