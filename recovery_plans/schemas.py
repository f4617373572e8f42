"""Pydantic request models for the engine's entry points."""

from datetime import date
from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from recovery_plans.config import settings
from recovery_plans.models.terms import (
    AmortizationMethod,
    Capitalization,
    ClosureOutcome,
    FixedInterest,
    InterestConfig,
    InterestRate,
    LegalInterest,
    MoratoryInterest,
    NoInterest,
    PlanTerms,
    RateType,
)


# ---- Interest variants ----

class NoInterestSchema(BaseModel):
    kind: Literal["none"] = "none"

    def to_config(self) -> InterestConfig:
        return NoInterest()


class FixedInterestSchema(BaseModel):
    kind: Literal["fixed"]
    rate: Decimal = Field(..., ge=0, le=100, decimal_places=4, description="Annual rate in percent")
    start_date: date | None = Field(None, description="Interest accrual start")

    def to_config(self) -> InterestConfig:
        return FixedInterest(rate=self.rate, start_date=self.start_date)


class LegalInterestSchema(BaseModel):
    kind: Literal["legal"]
    start_date: date | None = None

    def to_config(self) -> InterestConfig:
        return LegalInterest(start_date=self.start_date)


class MoratoryInterestSchema(BaseModel):
    kind: Literal["moratory"]
    start_date: date | None = None
    pre_2013: bool = Field(False, description="Transaction concluded by 31/12/2012")
    markup_pct: Decimal | None = Field(None, description="Agri-food markup, 2 or 4 points")

    @field_validator("markup_pct")
    @classmethod
    def _allowed_markup(cls, v: Decimal | None) -> Decimal | None:
        if v is not None and v not in settings.moratory_markup_options:
            allowed = ", ".join(str(o) for o in settings.moratory_markup_options)
            raise ValueError(f"markup_pct must be one of {allowed}")
        return v

    def to_config(self) -> InterestConfig:
        return MoratoryInterest(start_date=self.start_date, pre_2013=self.pre_2013, markup_pct=self.markup_pct)


InterestSchema = Annotated[
    Union[NoInterestSchema, FixedInterestSchema, LegalInterestSchema, MoratoryInterestSchema],
    Field(discriminator="kind"),
]


# ---- Request schemas ----

class CreatePlanRequest(BaseModel):
    principal: Decimal = Field(..., gt=0, decimal_places=2, description="Recognized debt to amortize")
    installment_count: int = Field(..., ge=1)
    start_date: date = Field(..., description="Due date of the first installment")
    interest: InterestSchema = Field(default_factory=NoInterestSchema)
    method: AmortizationMethod = AmortizationMethod.ITALIAN
    capitalization: Capitalization = Capitalization.NONE
    apply_art_1194: bool = True
    notes: str | None = None

    def to_terms(self) -> PlanTerms:
        return PlanTerms(
            principal=self.principal,
            installment_count=self.installment_count,
            start_date=self.start_date,
            interest=self.interest.to_config(),
            method=self.method,
            capitalization=self.capitalization,
            apply_art_1194=self.apply_art_1194,
            notes=self.notes,
        )


class RegisterPaymentRequest(BaseModel):
    payment_date: date
    method: str = Field(..., min_length=1, max_length=50)
    code: str | None = Field(None, max_length=255)
    notes: str | None = None
    receipt_ref: str | None = Field(None, max_length=500, description="Opaque document store reference")


class ClosePlanRequest(BaseModel):
    outcome: ClosureOutcome
    notes: str | None = None


class CreateRateRequest(BaseModel):
    rate_type: RateType
    percentage: Decimal = Field(..., ge=0, le=100, decimal_places=4)
    valid_from: date
    valid_to: date | None = None
    decree_reference: str | None = Field(None, max_length=255)
    notes: str | None = None

    @model_validator(mode="after")
    def _window_order(self) -> "CreateRateRequest":
        if self.valid_to is not None and self.valid_from > self.valid_to:
            raise ValueError("valid_from cannot be after valid_to")
        return self

    def to_domain(self) -> InterestRate:
        return InterestRate(
            rate_type=self.rate_type,
            percentage=self.percentage,
            valid_from=self.valid_from,
            valid_to=self.valid_to,
            decree_reference=self.decree_reference,
            notes=self.notes,
        )


class UpdateRateRequest(BaseModel):
    """Partial update of a rate row. Only the fields actually sent are applied;
    an explicit ``valid_to: null`` reopens the window."""

    percentage: Decimal | None = Field(None, ge=0, le=100, decimal_places=4)
    valid_from: date | None = None
    valid_to: date | None = None
    decree_reference: str | None = Field(None, max_length=255)
    notes: str | None = None

    @model_validator(mode="after")
    def _required_when_sent(self) -> "UpdateRateRequest":
        for name in ("percentage", "valid_from"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be cleared")
        if self.valid_from is not None and self.valid_to is not None and self.valid_from > self.valid_to:
            raise ValueError("valid_from cannot be after valid_to")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)
