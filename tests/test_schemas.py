from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from recovery_plans.models.terms import (
    AmortizationMethod,
    ClosureOutcome,
    FixedInterest,
    LegalInterest,
    MoratoryInterest,
    NoInterest,
    PlanStatus,
    RateType,
)
from recovery_plans.schemas import (
    ClosePlanRequest,
    CreatePlanRequest,
    CreateRateRequest,
    RegisterPaymentRequest,
    UpdateRateRequest,
)


class TestCreatePlanRequest:
    def test_defaults_to_no_interest(self):
        request = CreatePlanRequest(principal="10000", installment_count=10, start_date="2024-01-01")
        terms = request.to_terms()
        assert terms.interest == NoInterest()
        assert terms.apply_interest is False
        assert terms.method is AmortizationMethod.ITALIAN
        assert terms.principal == Decimal("10000")

    def test_fixed_interest(self):
        request = CreatePlanRequest(
            principal="12000", installment_count=12, start_date="2024-01-01",
            interest={"kind": "fixed", "rate": "6", "start_date": "2024-01-01"},
            method="french",
        )
        terms = request.to_terms()
        assert terms.interest == FixedInterest(rate=Decimal("6"), start_date=date(2024, 1, 1))
        assert terms.method is AmortizationMethod.FRENCH

    def test_legal_interest(self):
        request = CreatePlanRequest(
            principal="5000", installment_count=5, start_date="2024-01-01",
            interest={"kind": "legal", "start_date": "2023-06-01"},
        )
        assert request.to_terms().interest == LegalInterest(start_date=date(2023, 6, 1))
        assert request.to_terms().interest_reference_date == date(2023, 6, 1)

    def test_moratory_with_markup(self):
        request = CreatePlanRequest(
            principal="5000", installment_count=5, start_date="2024-01-01",
            interest={"kind": "moratory", "pre_2013": True, "markup_pct": "4"},
        )
        config = request.to_terms().interest
        assert isinstance(config, MoratoryInterest)
        assert config.pre_2013 is True
        assert config.has_markup

    def test_markup_outside_options(self):
        with pytest.raises(ValidationError, match="markup_pct"):
            CreatePlanRequest(
                principal="5000", installment_count=5, start_date="2024-01-01",
                interest={"kind": "moratory", "markup_pct": "3"},
            )

    def test_unknown_interest_kind(self):
        with pytest.raises(ValidationError):
            CreatePlanRequest(
                principal="5000", installment_count=5, start_date="2024-01-01",
                interest={"kind": "compound"},
            )

    @pytest.mark.parametrize("field,value", [("principal", "0"), ("installment_count", 0)])
    def test_rejects_non_positive(self, field, value):
        data = {"principal": "5000", "installment_count": 5, "start_date": "2024-01-01", field: value}
        with pytest.raises(ValidationError):
            CreatePlanRequest(**data)

    def test_fixed_rate_above_hundred(self):
        with pytest.raises(ValidationError):
            CreatePlanRequest(
                principal="5000", installment_count=5, start_date="2024-01-01",
                interest={"kind": "fixed", "rate": "101"},
            )

    def test_principal_in_whole_cents(self):
        base = {"installment_count": 3, "start_date": "2024-01-01"}
        assert CreatePlanRequest(principal="100.50", **base).principal == Decimal("100.50")
        with pytest.raises(ValidationError):
            CreatePlanRequest(principal="100.005", **base)

    def test_fixed_rate_precision(self):
        base = {"principal": "5000", "installment_count": 5, "start_date": "2024-01-01"}
        request = CreatePlanRequest(interest={"kind": "fixed", "rate": "6.125"}, **base)
        assert request.to_terms().interest.rate == Decimal("6.125")
        with pytest.raises(ValidationError):
            CreatePlanRequest(interest={"kind": "fixed", "rate": "6.12345"}, **base)


class TestOtherRequests:
    def test_payment_requires_method(self):
        with pytest.raises(ValidationError):
            RegisterPaymentRequest(payment_date="2024-02-01", method="")

    def test_payment_request(self):
        request = RegisterPaymentRequest(payment_date="2024-02-01", method="bank_transfer", code="CRO123")
        assert request.payment_date == date(2024, 2, 1)
        assert request.receipt_ref is None

    def test_close_outcome_maps_to_status(self):
        request = ClosePlanRequest(outcome="negative")
        assert request.outcome is ClosureOutcome.NEGATIVE
        assert request.outcome.status is PlanStatus.CLOSED_NEGATIVE

    def test_rate_window_order(self):
        with pytest.raises(ValidationError, match="valid_from"):
            CreateRateRequest(rate_type="legal", percentage="2", valid_from="2025-01-01", valid_to="2024-12-31")

    def test_rate_to_domain(self):
        rate = CreateRateRequest(rate_type="moratory", percentage="10.15", valid_from="2025-07-01").to_domain()
        assert rate.rate_type is RateType.MORATORY
        assert rate.valid_to is None
        assert rate.is_valid_on(date(2040, 1, 1))

    def test_rate_update_keeps_only_sent_fields(self):
        assert UpdateRateRequest(valid_to=None).changes() == {"valid_to": None}
        assert UpdateRateRequest(percentage="1.65").changes() == {"percentage": Decimal("1.65")}

    @pytest.mark.parametrize("field", ["percentage", "valid_from"])
    def test_rate_update_cannot_clear_required(self, field):
        with pytest.raises(ValidationError, match="cannot be cleared"):
            UpdateRateRequest(**{field: None})

    def test_rate_update_window_order(self):
        with pytest.raises(ValidationError, match="valid_from"):
            UpdateRateRequest(valid_from="2025-01-01", valid_to="2024-12-31")
