from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum


class RateType(Enum):
    LEGAL = "legal"
    MORATORY = "moratory"


class InterestType(Enum):
    LEGAL = "legal"
    MORATORY = "moratory"
    FIXED = "fixed"


class AmortizationMethod(Enum):
    ITALIAN = "italian"  # Constant principal share
    FRENCH = "french"    # Constant installment


class Capitalization(Enum):
    NONE = "none"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"


class PlanStatus(Enum):
    ACTIVE = "active"
    CLOSED_POSITIVE = "closed_positive"
    CLOSED_NEGATIVE = "closed_negative"
    SUSPENDED = "suspended"

    @property
    def is_closed(self) -> bool:
        return self in (PlanStatus.CLOSED_POSITIVE, PlanStatus.CLOSED_NEGATIVE)


class ClosureOutcome(Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"

    @property
    def status(self) -> PlanStatus:
        if self is ClosureOutcome.POSITIVE:
            return PlanStatus.CLOSED_POSITIVE
        return PlanStatus.CLOSED_NEGATIVE


@dataclass(frozen=True)
class InterestRate:
    """One row of the statutory rate table."""
    rate_type: RateType
    percentage: Decimal  # Annual, in percent (e.g. Decimal("2.5"))
    valid_from: date
    valid_to: date | None = None  # None = open-ended
    id: str | None = None
    decree_reference: str | None = None
    notes: str | None = None

    def is_valid_on(self, on: date) -> bool:
        return self.valid_from <= on and (self.valid_to is None or on <= self.valid_to)


# ---- Interest configuration (one variant per interest regime) ----

@dataclass(frozen=True)
class NoInterest:
    @property
    def interest_type(self) -> InterestType | None:
        return None


@dataclass(frozen=True)
class FixedInterest:
    rate: Decimal
    start_date: date | None = None

    @property
    def interest_type(self) -> InterestType:
        return InterestType.FIXED


@dataclass(frozen=True)
class LegalInterest:
    start_date: date | None = None

    @property
    def interest_type(self) -> InterestType:
        return InterestType.LEGAL


@dataclass(frozen=True)
class MoratoryInterest:
    start_date: date | None = None
    pre_2013: bool = False  # Transaction concluded by 31/12/2012
    markup_pct: Decimal | None = None  # Agri-food markup, None = not applied

    @property
    def interest_type(self) -> InterestType:
        return InterestType.MORATORY

    @property
    def has_markup(self) -> bool:
        return self.markup_pct is not None


InterestConfig = NoInterest | FixedInterest | LegalInterest | MoratoryInterest


@dataclass(frozen=True)
class PlanTerms:
    """Everything needed to generate (or regenerate) a plan."""
    principal: Decimal
    installment_count: int
    start_date: date
    interest: InterestConfig = NoInterest()
    method: AmortizationMethod = AmortizationMethod.ITALIAN
    capitalization: Capitalization = Capitalization.NONE  # Stored, not computed
    apply_art_1194: bool = True  # Art. 1194 c.c. imputation of partial payments
    notes: str | None = None

    @property
    def apply_interest(self) -> bool:
        return not isinstance(self.interest, NoInterest)

    @property
    def interest_start_date(self) -> date | None:
        return getattr(self.interest, "start_date", None)

    @property
    def interest_reference_date(self) -> date:
        """Date used to look up the statutory rate."""
        return self.interest_start_date or self.start_date
