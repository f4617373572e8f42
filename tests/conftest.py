"""Shared fixtures.

Persistence tests run against a throwaway SQLite file per test; the
canonical plan is 12,000 at a fixed 6% over 12 monthly installments from
2024-01-01 (Italian method).
"""

from datetime import date
from decimal import Decimal

import pytest

from recovery_plans.db import build_engine, build_session_factory, create_schema, get_session
from recovery_plans.models.terms import FixedInterest, PlanTerms
from recovery_plans.services.plans import PlanService
from recovery_plans.services.rates import RateTableService


@pytest.fixture
def fixed_terms() -> PlanTerms:
    return PlanTerms(
        principal=Decimal("12000"),
        installment_count=12,
        start_date=date(2024, 1, 1),
        interest=FixedInterest(rate=Decimal("6"), start_date=date(2024, 1, 1)),
    )


@pytest.fixture
def interest_free_terms() -> PlanTerms:
    return PlanTerms(
        principal=Decimal("10000"),
        installment_count=10,
        start_date=date(2024, 1, 1),
    )


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'recovery.db'}")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine):
    async for session in get_session(build_session_factory(engine)):
        yield session


@pytest.fixture
def plan_service(session) -> PlanService:
    return PlanService(session)


@pytest.fixture
def rate_service(session) -> RateTableService:
    return RateTableService(session)


@pytest.fixture
async def seeded_rates(rate_service) -> int:
    return await rate_service.seed_default_rates()


@pytest.fixture
async def fixed_plan(plan_service, fixed_terms):
    return await plan_service.create_or_regenerate("case-001", fixed_terms)
