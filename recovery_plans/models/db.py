"""SQLAlchemy ORM models for plan, installment, rate and ledger persistence."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from recovery_plans.engine.interest import ResolvedRate
from recovery_plans.models.ledger import LedgerEntryKind
from recovery_plans.models.terms import (
    AmortizationMethod,
    Capitalization,
    FixedInterest,
    InterestConfig,
    InterestRate,
    InterestType,
    LegalInterest,
    MoratoryInterest,
    NoInterest,
    PlanStatus,
    PlanTerms,
    RateType,
)


class Base(DeclarativeBase):
    pass


def _enum(enum_cls) -> Enum:
    """Store enum values (not names) in a plain VARCHAR column."""
    return Enum(
        enum_cls,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )


class InterestRateRecord(Base):
    __tablename__ = "interest_rates"
    __table_args__ = (Index("ix_interest_rates_type_from", "rate_type", "valid_from"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    rate_type: Mapped[RateType] = mapped_column(_enum(RateType))
    percentage: Mapped[Decimal] = mapped_column(Numeric(7, 4))
    valid_from: Mapped[date] = mapped_column(Date)
    valid_to: Mapped[date | None] = mapped_column(Date, nullable=True)
    decree_reference: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_domain(self) -> InterestRate:
        return InterestRate(
            id=str(self.id),
            rate_type=self.rate_type,
            percentage=self.percentage,
            valid_from=self.valid_from,
            valid_to=self.valid_to,
            decree_reference=self.decree_reference,
            notes=self.notes,
        )


class PlanRecord(Base):
    __tablename__ = "amortization_plans"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    # One plan per case
    case_id: Mapped[str] = mapped_column(String(36), unique=True)

    initial_principal: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    installment_count: Mapped[int] = mapped_column(Integer)
    start_date: Mapped[date] = mapped_column(Date)

    # Lifecycle
    status: Mapped[PlanStatus] = mapped_column(_enum(PlanStatus), default=PlanStatus.ACTIVE)
    closure_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    recovered_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    principal_entered: Mapped[bool] = mapped_column(Boolean, default=False)
    principal_movement_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    # Interest
    apply_interest: Mapped[bool] = mapped_column(Boolean, default=False)
    interest_type: Mapped[InterestType | None] = mapped_column(_enum(InterestType), nullable=True)
    fixed_rate: Mapped[Decimal | None] = mapped_column(Numeric(7, 4), nullable=True)
    effective_rate: Mapped[Decimal | None] = mapped_column(Numeric(7, 4), nullable=True)
    rate_fallback: Mapped[bool] = mapped_column(Boolean, default=False)
    amortization_method: Mapped[AmortizationMethod] = mapped_column(
        _enum(AmortizationMethod), default=AmortizationMethod.ITALIAN
    )
    capitalization: Mapped[Capitalization] = mapped_column(_enum(Capitalization), default=Capitalization.NONE)
    interest_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    moratory_pre2013: Mapped[bool] = mapped_column(Boolean, default=False)
    moratory_markup: Mapped[bool] = mapped_column(Boolean, default=False)
    moratory_markup_pct: Mapped[Decimal | None] = mapped_column(Numeric(7, 4), nullable=True)
    apply_art_1194: Mapped[bool] = mapped_column(Boolean, default=True)
    total_interest: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    installments: Mapped[list["InstallmentRecord"]] = relationship(
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="InstallmentRecord.number",
        lazy="selectin",
    )

    @classmethod
    def from_terms(cls, case_id: str, terms: PlanTerms, resolved: ResolvedRate | None) -> "PlanRecord":
        """Flatten the interest variant into the persisted columns."""
        config = terms.interest
        return cls(
            case_id=case_id,
            initial_principal=terms.principal,
            installment_count=terms.installment_count,
            start_date=terms.start_date,
            status=PlanStatus.ACTIVE,
            principal_entered=False,
            apply_interest=terms.apply_interest,
            interest_type=config.interest_type,
            fixed_rate=config.rate if isinstance(config, FixedInterest) else None,
            effective_rate=resolved.rate if resolved else None,
            rate_fallback=resolved.is_fallback if resolved else False,
            amortization_method=terms.method,
            capitalization=terms.capitalization,
            interest_start_date=terms.interest_start_date,
            moratory_pre2013=isinstance(config, MoratoryInterest) and config.pre_2013,
            moratory_markup=isinstance(config, MoratoryInterest) and config.has_markup,
            moratory_markup_pct=config.markup_pct if isinstance(config, MoratoryInterest) else None,
            apply_art_1194=terms.apply_art_1194,
            total_interest=Decimal("0"),
            notes=terms.notes,
        )

    @property
    def interest_config(self) -> InterestConfig:
        """Rebuild the interest variant from the flat columns."""
        if not self.apply_interest or self.interest_type is None:
            return NoInterest()
        if self.interest_type is InterestType.FIXED:
            return FixedInterest(rate=self.fixed_rate or Decimal("0"), start_date=self.interest_start_date)
        if self.interest_type is InterestType.LEGAL:
            return LegalInterest(start_date=self.interest_start_date)
        return MoratoryInterest(
            start_date=self.interest_start_date,
            pre_2013=self.moratory_pre2013,
            markup_pct=self.moratory_markup_pct if self.moratory_markup else None,
        )

    @property
    def terms(self) -> PlanTerms:
        return PlanTerms(
            principal=self.initial_principal,
            installment_count=self.installment_count,
            start_date=self.start_date,
            interest=self.interest_config,
            method=self.amortization_method,
            capitalization=self.capitalization,
            apply_art_1194=self.apply_art_1194,
            notes=self.notes,
        )


class InstallmentRecord(Base):
    __tablename__ = "amortization_installments"
    __table_args__ = (UniqueConstraint("plan_id", "number", name="uq_installment_plan_number"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    plan_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("amortization_plans.id", ondelete="CASCADE"))

    number: Mapped[int] = mapped_column(Integer)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    principal_share: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    interest_share: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    due_date: Mapped[date] = mapped_column(Date)

    # Payment (all set or all null)
    paid: Mapped[bool] = mapped_column(Boolean, default=False)
    payment_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    payment_code: Mapped[str | None] = mapped_column(String(255), nullable=True)
    payment_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    receipt_ref: Mapped[str | None] = mapped_column(String(500), nullable=True)
    principal_movement_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    interest_movement_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Optimistic lock: concurrent payment/reversal of the same row raises StaleDataError
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version, "eager_defaults": True}

    plan: Mapped["PlanRecord"] = relationship(back_populates="installments", lazy="joined")


class LedgerEntryRecord(Base):
    __tablename__ = "ledger_entries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    case_id: Mapped[str] = mapped_column(String(36), index=True)
    kind: Mapped[LedgerEntryKind] = mapped_column(_enum(LedgerEntryKind))
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    entry_date: Mapped[date] = mapped_column(Date)
    source_installment_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    description: Mapped[str] = mapped_column(Text, default="")
