"""Published Italian statutory rates.

Legal rates: annual MEF decrees (art. 1284 c.c.).
Moratory rates: ECB reference rate + 8 points, set per semester
(D.Lgs. 231/2002 as amended by D.Lgs. 192/2012).
"""

from datetime import date
from decimal import Decimal

from recovery_plans.models.terms import InterestRate, RateType


def _legal(pct: str, start: date, end: date, decree: str) -> InterestRate:
    return InterestRate(
        rate_type=RateType.LEGAL,
        percentage=Decimal(pct),
        valid_from=start,
        valid_to=end,
        decree_reference=decree,
    )


def _moratory(pct: str, year: int, semester: int, ecb: str) -> InterestRate:
    start = date(year, 1, 1) if semester == 1 else date(year, 7, 1)
    end = date(year, 6, 30) if semester == 1 else date(year, 12, 31)
    return InterestRate(
        rate_type=RateType.MORATORY,
        percentage=Decimal(pct),
        valid_from=start,
        valid_to=end,
        decree_reference=f"MEF - Semester {semester}/{year}",
        notes=f"ECB {ecb}% + 8%",
    )


LEGAL_RATES: list[InterestRate] = [
    _legal("0.05", date(2020, 1, 1), date(2020, 12, 31), "Decreto MEF 12/12/2019 - GU n.293"),
    _legal("0.01", date(2021, 1, 1), date(2022, 12, 31), "Decreto MEF 11/12/2020 - GU n.309"),
    _legal("5.00", date(2023, 1, 1), date(2023, 12, 31), "Decreto MEF 13/12/2022 - GU n.291"),
    _legal("2.50", date(2024, 1, 1), date(2024, 12, 31), "Decreto MEF 12/12/2023 - GU n.290"),
    _legal("2.00", date(2025, 1, 1), date(2025, 12, 31), "Decreto MEF 11/12/2024 - GU n.290"),
    _legal("1.60", date(2026, 1, 1), date(2026, 12, 31), "Decreto MEF 10/12/2025 - GU n.289"),
]

MORATORY_RATES: list[InterestRate] = [
    _moratory("8.00", 2020, 1, "0.00"),
    _moratory("8.00", 2020, 2, "0.00"),
    _moratory("8.00", 2021, 1, "0.00"),
    _moratory("8.00", 2021, 2, "0.00"),
    _moratory("8.00", 2022, 1, "0.00"),
    _moratory("8.50", 2022, 2, "0.50"),
    _moratory("10.00", 2023, 1, "2.00"),
    _moratory("12.25", 2023, 2, "4.25"),
    _moratory("12.00", 2024, 1, "4.00"),
    _moratory("11.50", 2024, 2, "3.50"),
    _moratory("10.65", 2025, 1, "2.65"),
    _moratory("10.15", 2025, 2, "2.15"),
]

DEFAULT_RATES: list[InterestRate] = LEGAL_RATES + MORATORY_RATES
