"""Plan progress statistics.

Pure computation over installments (drafts or persisted records). No I/O.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Protocol

TWO_PLACES = Decimal("0.01")


class InstallmentLike(Protocol):
    due_date: date
    amount: Decimal
    principal_share: Decimal
    interest_share: Decimal
    paid: bool


@dataclass(frozen=True)
class PlanSummary:
    initial_principal: Decimal
    total_interest: Decimal
    principal_paid: Decimal
    interest_paid: Decimal
    amount_paid: Decimal
    residual_principal: Decimal
    installment_count: int
    paid_count: int
    remaining_count: int
    overdue_count: int
    percent_paid: Decimal  # Share of installments paid, in percent


def plan_summary(
    installments: Iterable[InstallmentLike],
    initial_principal: Decimal,
    as_of: date | None = None,
) -> PlanSummary:
    """Aggregate paid/residual figures of a plan.

    Overdue installments are unpaid ones due strictly before ``as_of``
    (defaults to today).
    """
    as_of = as_of or date.today()
    rows = list(installments)
    paid = [r for r in rows if r.paid]

    principal_paid = sum((r.principal_share for r in paid), Decimal("0"))
    interest_paid = sum((r.interest_share for r in paid), Decimal("0"))
    total_interest = sum((r.interest_share for r in rows), Decimal("0"))
    overdue = sum(1 for r in rows if not r.paid and r.due_date < as_of)

    percent = Decimal("0")
    if rows:
        percent = (Decimal(len(paid)) * 100 / len(rows)).quantize(TWO_PLACES, ROUND_HALF_UP)

    return PlanSummary(
        initial_principal=initial_principal,
        total_interest=total_interest,
        principal_paid=principal_paid,
        interest_paid=interest_paid,
        amount_paid=principal_paid + interest_paid,
        residual_principal=initial_principal - principal_paid,
        installment_count=len(rows),
        paid_count=len(paid),
        remaining_count=len(rows) - len(paid),
        overdue_count=overdue,
        percent_paid=percent,
    )
