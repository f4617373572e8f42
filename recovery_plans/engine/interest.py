"""Effective interest rate resolution from the statutory rate table."""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable

from recovery_plans.models.terms import (
    FixedInterest,
    InterestRate,
    InterestType,
    LegalInterest,
    MoratoryInterest,
    PlanTerms,
    RateType,
)

logger = logging.getLogger(__name__)

PRE_2013_REDUCTION = Decimal("1")  # Pre-D.Lgs. 192/2012 moratory spread was ECB + 7


@dataclass(frozen=True)
class ResolvedRate:
    rate: Decimal  # Effective annual rate in percent
    base_rate: Decimal
    interest_type: InterestType
    reference_date: date | None
    source: str
    is_fallback: bool = False  # Moratory rate past its validity window
    source_row: InterestRate | None = None


def _pct(value: Decimal) -> str:
    return f"{value:.2f}%"


def _recency_key(row: InterestRate) -> tuple:
    return (row.valid_from, row.valid_to or date.max, row.percentage)


def valid_rates(candidates: Iterable[InterestRate], rate_type: RateType, on: date) -> list[InterestRate]:
    """Rows of the given type whose validity window contains the date."""
    return [r for r in candidates if r.rate_type is rate_type and r.is_valid_on(on)]


def select_base_rate(
    candidates: Iterable[InterestRate],
    rate_type: RateType,
    reference_date: date,
) -> tuple[InterestRate, bool] | None:
    """Pick the statutory row applicable on the reference date.

    Returns (row, is_fallback) or None.

    The most recently effective valid row wins. When no row is valid on the
    date, moratory lookups fall back to the nearest past row (expired
    window); legal lookups have no fallback.
    """
    rows = [r for r in candidates if r.rate_type is rate_type]
    valid = valid_rates(rows, rate_type, reference_date)
    if valid:
        return max(valid, key=_recency_key), False

    if rate_type is not RateType.MORATORY:
        return None

    past = [r for r in rows if r.valid_from <= reference_date]
    if not past:
        return None
    return max(past, key=_recency_key), True


def apply_moratory_adjustments(rate: Decimal, config: MoratoryInterest) -> Decimal:
    """Pre-2013 reduction first, then the agri-food markup."""
    if config.pre_2013:
        rate = max(rate - PRE_2013_REDUCTION, Decimal("0"))
    if config.markup_pct is not None:
        rate = rate + config.markup_pct
    return rate


def resolve_rate(terms: PlanTerms, candidates: Iterable[InterestRate]) -> ResolvedRate | None:
    """Resolve the effective annual rate for a plan.

    Returns None when no interest applies or no usable rate exists; callers
    requiring interest must treat None as a resolution failure.
    """
    config = terms.interest

    if isinstance(config, FixedInterest):
        if config.rate <= 0:
            return None
        return ResolvedRate(
            rate=config.rate,
            base_rate=config.rate,
            interest_type=InterestType.FIXED,
            reference_date=terms.interest_reference_date,
            source=f"Fixed contractual rate {_pct(config.rate)}",
        )

    if not isinstance(config, (LegalInterest, MoratoryInterest)):
        return None

    rate_type = RateType(config.interest_type.value)
    reference = terms.interest_reference_date
    selected = select_base_rate(candidates, rate_type, reference)
    if selected is None:
        logger.debug("No %s rate for %s", rate_type.value, reference)
        return None

    row, is_fallback = selected
    base = row.percentage
    rate = base
    parts = [f"{rate_type.value.capitalize()} rate {_pct(base)} valid from {row.valid_from.isoformat()}"]
    if is_fallback:
        parts.append(f"(expired {row.valid_to.isoformat()}, nearest past rate)")

    if isinstance(config, MoratoryInterest):
        rate = apply_moratory_adjustments(base, config)
        if config.pre_2013:
            parts.append(f"- {_pct(PRE_2013_REDUCTION)} pre-2013 reduction")
        if config.markup_pct is not None:
            parts.append(f"+ {_pct(config.markup_pct)} agri-food markup")

    parts.append(f"= {_pct(rate)}")
    source = " ".join(parts)
    logger.debug("Resolved %s rate for %s: %s", rate_type.value, reference, source)

    return ResolvedRate(
        rate=rate,
        base_rate=base,
        interest_type=config.interest_type,
        reference_date=reference,
        source=source,
        is_fallback=is_fallback,
        source_row=row,
    )
