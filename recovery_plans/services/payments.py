"""Installment payment and reversal, and their financial ledger postings.

This is the only place where ledger entries are created or removed. A paid
installment links one principal-recovery entry and, when it carries
interest, one interest-recovery entry.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from recovery_plans.data.base import Ledger
from recovery_plans.data.ledger import SqlLedger
from recovery_plans.db import as_uuid, transaction
from recovery_plans.errors import NotFoundError, StateConflictError, ValidationError
from recovery_plans.models.db import InstallmentRecord, PlanRecord
from recovery_plans.models.ledger import LedgerEntry, LedgerEntryKind
from recovery_plans.models.terms import PlanStatus

logger = logging.getLogger(__name__)


def require_active(plan: PlanRecord, action: str) -> None:
    if plan.status is not PlanStatus.ACTIVE:
        raise StateConflictError(f"Cannot {action} on a plan that is not active", plan.status.value)


class PaymentLedgerBridge:
    def __init__(self, session: AsyncSession, ledger: Ledger | None = None):
        self.session = session
        self.ledger = ledger or SqlLedger(session)

    async def get_installment(self, installment_id: uuid.UUID | str) -> InstallmentRecord:
        installment = await self.session.get(InstallmentRecord, as_uuid(installment_id))
        if installment is None:
            raise NotFoundError("Installment", installment_id)
        return installment

    def _describe(self, installment: InstallmentRecord, what: str, code: str | None) -> str:
        ref = f" (Ref: {code})" if code else ""
        return (
            f"Amortization plan - installment {installment.number}/{installment.plan.installment_count}"
            f" payment - {what}{ref}"
        )

    async def register_payment(
        self,
        installment_id: uuid.UUID | str,
        payment_date: date,
        method: str,
        code: str | None = None,
        notes: str | None = None,
        receipt_ref: str | None = None,
    ) -> InstallmentRecord:
        """Mark an installment paid and post its recovery entries."""
        if not method or not method.strip():
            raise ValidationError("Payment method is required")

        async with transaction(self.session):
            installment = await self.get_installment(installment_id)
            if installment.paid:
                raise StateConflictError("Installment is already paid", "paid")
            plan = installment.plan
            require_active(plan, "register payments")

            principal_ref = await self.ledger.post(LedgerEntry(
                case_id=plan.case_id,
                kind=LedgerEntryKind.PRINCIPAL_RECOVERY,
                amount=installment.principal_share,
                entry_date=payment_date,
                source_installment_id=str(installment.id),
                description=self._describe(installment, "principal recovery", code),
            ))
            interest_ref = None
            if installment.interest_share > 0:
                interest_ref = await self.ledger.post(LedgerEntry(
                    case_id=plan.case_id,
                    kind=LedgerEntryKind.INTEREST_RECOVERY,
                    amount=installment.interest_share,
                    entry_date=payment_date,
                    source_installment_id=str(installment.id),
                    description=self._describe(installment, "interest recovery", code),
                ))

            installment.paid = True
            installment.payment_date = payment_date
            installment.payment_method = method
            installment.payment_code = code
            installment.payment_notes = notes
            installment.receipt_ref = receipt_ref
            installment.principal_movement_id = principal_ref
            installment.interest_movement_id = interest_ref
            await self.session.flush()

        logger.info(
            "Installment %s/%s of case %s paid on %s (%s)",
            installment.number, plan.installment_count, plan.case_id, payment_date, installment.amount,
        )
        return installment

    async def reverse_payment(self, installment_id: uuid.UUID | str) -> InstallmentRecord:
        """Undo a payment: remove its ledger entries and clear the payment fields.

        Entries already removed from the ledger count as reversed.
        """
        async with transaction(self.session):
            installment = await self.get_installment(installment_id)
            if not installment.paid:
                raise StateConflictError("Installment is not paid", "unpaid")
            plan = installment.plan
            require_active(plan, "reverse payments")

            for reference in (installment.principal_movement_id, installment.interest_movement_id):
                if reference and not await self.ledger.delete(reference):
                    logger.warning(
                        "Ledger entry %s of installment %s already removed, treating as reversed",
                        reference, installment.id,
                    )

            installment.paid = False
            installment.payment_date = None
            installment.payment_method = None
            installment.payment_code = None
            installment.payment_notes = None
            installment.receipt_ref = None
            installment.principal_movement_id = None
            installment.interest_movement_id = None
            await self.session.flush()

        logger.info("Payment of installment %s/%s of case %s reversed",
                    installment.number, plan.installment_count, plan.case_id)
        return installment

    async def post_principal_entry(self, plan: PlanRecord, entry_date: date, notes: str | None = None) -> str:
        """Post the plan's initial principal. Runs inside the caller's transaction."""
        description = "Amortization plan - principal entered"
        if notes:
            description = f"{description}. {notes}"
        return await self.ledger.post(LedgerEntry(
            case_id=plan.case_id,
            kind=LedgerEntryKind.PRINCIPAL_ENTRY,
            amount=plan.initial_principal,
            entry_date=entry_date,
            description=description,
        ))

    async def recovered_principal(self, case_id: str) -> Decimal:
        return await self.ledger.total(case_id, LedgerEntryKind.PRINCIPAL_RECOVERY)
