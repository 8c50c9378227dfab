"""
WSIB premiums (Ontario workplace insurance).

Employer-only: nothing is withheld from the employee. The rate depends on the
employer's rate group, so it comes from company settings rather than a
statutory constant.
"""
from canpay.core.exceptions import PayrollValidationError
from canpay.core.schemas import WSIBResult
from canpay.core.utils import round2

# Indicative premium rates (%) by sector, for reference only.
WSIB_RATES_BY_INDUSTRY = {
    "office": 0.17,
    "retail": 0.35,
    "restaurants": 0.84,
    "construction": 2.5,
    "manufacturing": 1.2,
    "healthcare": 0.6,
    "education": 0.2,
    "transport": 1.8,
}

def compute_wsib(
    current_assessable: float,
    ytd_assessable: float,
    wsib_rate: float,
    max_assessable: float = 100000.0,
) -> WSIBResult:
    rate = wsib_rate / 100
    assessable = 0.0
    premium = 0.0

    if ytd_assessable < max_assessable:
        assessable = max(0.0, min(current_assessable, max_assessable - ytd_assessable))
        if assessable > 0:
            premium = round2(assessable * rate)

    return WSIBResult(
        premium=premium,
        assessable_this=round2(assessable),
        new_ytd_wsib=round2(ytd_assessable + assessable),
    )

def validate_wsib_rate(rate: float) -> None:
    if rate < 0 or rate > 10:
        raise PayrollValidationError("WSIB rate must be between 0% and 10%")

def max_wsib_premium(wsib_rate: float, max_assessable: float = 100000.0) -> float:
    return round2(max_assessable * wsib_rate / 100)

def has_reached_wsib_cap(ytd_assessable: float, max_assessable: float = 100000.0) -> bool:
    return ytd_assessable >= max_assessable
