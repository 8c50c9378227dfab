from typing import Any, Dict

from canpay.core.exceptions import PayrollValidationError
from canpay.core.schemas import MAX_VACATION_RATE, VacationResult
from canpay.core.utils import round2

def calculate_vacation(
    base_earnings: float,
    vacation_rate: float,
    mode: str,
    vacation_amount: float = 0.0,
) -> VacationResult:
    """
    Vacation pay for the period, either paid out or accrued as a liability.

    Args:
        base_earnings: Earnings vacation is calculated on (no VAC or BANKHRS lines)
        vacation_rate: Percent, e.g. 4 for 4%
        mode: 'pay' adds vacation to gross, 'accrue' only tracks it
        vacation_amount: Explicit payout used instead of the calculated amount in 'pay' mode
    """
    calculated = round2(max(0.0, base_earnings) * (vacation_rate / 100))

    if mode == "pay":
        paid = round2(vacation_amount) if vacation_amount > 0 else calculated
        return VacationResult(vacation_paid=paid, vacation_accrued=0.0, amount_added_to_gross=paid)
    if mode == "accrue":
        # accrued vacation is a liability, not earnings: gross stays untouched
        return VacationResult(vacation_paid=0.0, vacation_accrued=calculated, amount_added_to_gross=0.0)
    raise PayrollValidationError(f"Unknown vacation mode {mode!r}; expected 'pay' or 'accrue'")

def vacation_entitlement(years_of_service: float) -> Dict[str, Any]:
    """Ontario ESA minimum entitlement for the given length of service."""
    if years_of_service < 5:
        return {"rate": 4.0, "weeks": 2, "description": "Less than 5 years: 4% or 2 weeks"}
    return {"rate": 6.0, "weeks": 3, "description": "5+ years: 6% or 3 weeks"}

def validate_vacation_rate(rate: float) -> None:
    if rate < 0 or rate > MAX_VACATION_RATE:
        raise PayrollValidationError("Vacation rate must be between 0% and 15%")

def calculate_vacation_hours(regular_hours: float, vacation_rate: float) -> float:
    return round2(regular_hours * (vacation_rate / 100))
