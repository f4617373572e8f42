"""Amortization schedule computation.

Pure functions: Decimal in, dataclass out. No I/O.

Interest follows the Italian civil-year convention I = C x S x N / 36500
(capital x annual rate in percent x actual days), regardless of the
amortization method.
"""

import calendar
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from recovery_plans.errors import ValidationError
from recovery_plans.models.terms import AmortizationMethod

TWO_PLACES = Decimal("0.01")
RATE_PLACES = Decimal("0.0001")  # Stored precision of rate percentages
CIVIL_YEAR_BASIS = Decimal("36500")


@dataclass(frozen=True)
class InstallmentDraft:
    number: int
    due_date: date
    amount: Decimal
    principal_share: Decimal
    interest_share: Decimal
    days: int  # Days of interest accrual
    residual_principal: Decimal  # Outstanding after this installment
    paid: bool = False


@dataclass(frozen=True)
class Schedule:
    installments: list[InstallmentDraft]
    total_interest: Decimal
    total_principal: Decimal
    fixed_installment: Decimal | None = None  # French method only


def add_months(start: date, months: int) -> date:
    """Calendar month arithmetic, clamping to the last day of short months."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def day_count(start: date, end: date) -> int:
    """Actual calendar days between two dates, never negative."""
    return max((end - start).days, 0)


def accrued_interest(residual: Decimal, annual_rate: Decimal, days: int) -> Decimal:
    """Simple interest on a civil 365-day year, rate in percent."""
    interest = residual * annual_rate * Decimal(days) / CIVIL_YEAR_BASIS
    return interest.quantize(TWO_PLACES, ROUND_HALF_UP)


def annuity_payment(principal: Decimal, annual_rate: Decimal, installment_count: int) -> Decimal:
    """Constant installment for the French method."""
    if installment_count < 1:
        raise ValidationError("Installment count must be at least 1")
    m = annual_rate / 100 / 12
    if m == 0:
        return (principal / installment_count).quantize(TWO_PLACES, ROUND_HALF_UP)
    # A = P * [m(1+m)^n] / [(1+m)^n - 1]
    factor = (1 + m) ** installment_count
    payment = principal * (m * factor) / (factor - 1)
    return payment.quantize(TWO_PLACES, ROUND_HALF_UP)


def _validate(principal: Decimal, installment_count: int, annual_rate: Decimal | None) -> None:
    if principal <= 0:
        raise ValidationError(f"Principal must be positive, got {principal}")
    if installment_count < 1:
        raise ValidationError(f"Installment count must be at least 1, got {installment_count}")
    if annual_rate is not None and annual_rate < 0:
        raise ValidationError(f"Interest rate cannot be negative, got {annual_rate}")


def generate_schedule(
    principal: Decimal,
    installment_count: int,
    start_date: date,
    method: AmortizationMethod = AmortizationMethod.ITALIAN,
    annual_rate: Decimal | None = None,
    interest_start_date: date | None = None,
) -> Schedule:
    """Generate the full installment schedule of a plan.

    Args:
        principal: Recognized debt to amortize
        installment_count: Number of monthly installments
        start_date: Due date of the first installment
        method: Italian (constant principal) or French (constant installment)
        annual_rate: Effective annual rate in percent, None for no interest
        interest_start_date: Interest accrual start, defaults to start_date

    Installment i falls due on start_date + (i - 1) months and carries the
    interest accrued over its monthly period, which ends on start_date + i
    months. The last installment absorbs any rounding remainder so the
    principal shares always add up to the principal. No principal share is
    negative: a French installment whose interest exceeds the annuity repays
    no principal that month.
    """
    _validate(principal, installment_count, annual_rate)

    if annual_rate is None:
        return _interest_free_schedule(principal, installment_count, start_date)

    accrual_start = interest_start_date or start_date
    italian_share = (principal / installment_count).quantize(TWO_PLACES, ROUND_HALF_UP)
    fixed_installment = None
    if method is AmortizationMethod.FRENCH:
        fixed_installment = annuity_payment(principal, annual_rate, installment_count)

    installments: list[InstallmentDraft] = []
    residual = principal
    previous_end = accrual_start
    total_interest = Decimal("0")

    for number in range(1, installment_count + 1):
        period_end = add_months(start_date, number)
        days = day_count(max(previous_end, accrual_start), period_end)
        interest = accrued_interest(residual, annual_rate, days)

        if number == installment_count:
            principal_share = residual
        elif fixed_installment is not None:
            # Interest of a long first period can exceed the annuity
            principal_share = min(max(fixed_installment - interest, Decimal("0")), residual)
        else:
            principal_share = min(italian_share, residual)

        residual -= principal_share
        total_interest += interest

        installments.append(InstallmentDraft(
            number=number,
            due_date=add_months(start_date, number - 1),
            amount=principal_share + interest,
            principal_share=principal_share,
            interest_share=interest,
            days=days,
            residual_principal=residual,
        ))
        previous_end = period_end

    return Schedule(
        installments=installments,
        total_interest=total_interest,
        total_principal=principal,
        fixed_installment=fixed_installment,
    )


def _interest_free_schedule(principal: Decimal, installment_count: int, start_date: date) -> Schedule:
    """Equal principal shares, zero interest, remainder on the last installment."""
    share = (principal / installment_count).quantize(TWO_PLACES, ROUND_HALF_UP)
    installments: list[InstallmentDraft] = []
    residual = principal

    for number in range(1, installment_count + 1):
        principal_share = residual if number == installment_count else min(share, residual)
        residual -= principal_share
        installments.append(InstallmentDraft(
            number=number,
            due_date=add_months(start_date, number - 1),
            amount=principal_share,
            principal_share=principal_share,
            interest_share=Decimal("0"),
            days=0,
            residual_principal=residual,
        ))

    return Schedule(
        installments=installments,
        total_interest=Decimal("0"),
        total_principal=principal,
    )
