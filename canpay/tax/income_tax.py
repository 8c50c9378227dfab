"""
Federal and Ontario income tax withholding estimate.

Uses the Tax Credit Method with one flat rate per jurisdiction:
``(annual income x rate) - (basic personal amount x rate)``. This is an
approximation of the CRA payroll deduction formulas, not the progressive
bracket tables.
"""
from typing import Any, Dict, List, Optional

from canpay.core.exceptions import PayrollValidationError
from canpay.core.schemas import StatutoryRateTable, TaxBreakdown
from canpay.core.utils import periods_per_year, round2
from canpay.tax.rates import get_rate_table

FEDERAL_WITHHOLDING_RATE = 14.5
ONTARIO_WITHHOLDING_RATE = 5.05

def _tax_credit_method(annual_income: float, basic_personal_amount: float, rate: float) -> float:
    rate = rate / 100
    return max(0.0, annual_income * rate - basic_personal_amount * rate)

def federal_tax(annual_income: float, basic_personal_amount: float, rate: float = FEDERAL_WITHHOLDING_RATE) -> float:
    return _tax_credit_method(annual_income, basic_personal_amount, rate)

def ontario_tax(annual_income: float, basic_personal_amount: float, rate: float = ONTARIO_WITHHOLDING_RATE) -> float:
    return _tax_credit_method(annual_income, basic_personal_amount, rate)

def estimate_income_tax(
    gross_pay: float,
    frequency: str,
    federal_bpa: float,
    provincial_bpa: float,
    federal_rate: float = FEDERAL_WITHHOLDING_RATE,
    provincial_rate: float = ONTARIO_WITHHOLDING_RATE,
) -> float:
    """
    Estimate per-period income tax for Ontario.

    Args:
        gross_pay: Gross pay for the period
        frequency: Pay frequency used to annualize the amount
        federal_bpa: Federal basic personal amount claimed on the TD1
        provincial_bpa: Ontario basic personal amount claimed on the TD1ON
        federal_rate: Federal withholding rate in percent
        provincial_rate: Provincial withholding rate in percent
    """
    periods = periods_per_year(frequency)
    annual = gross_pay * periods
    total = federal_tax(annual, federal_bpa, federal_rate) + ontario_tax(annual, provincial_bpa, provincial_rate)
    return round2(max(0.0, total / periods))

def tax_breakdown(
    gross_pay: float,
    frequency: str,
    federal_bpa: float,
    provincial_bpa: float,
    federal_rate: float = FEDERAL_WITHHOLDING_RATE,
    provincial_rate: float = ONTARIO_WITHHOLDING_RATE,
) -> TaxBreakdown:
    """Intermediate figures behind ``estimate_income_tax``, for paystub review screens."""
    periods = periods_per_year(frequency)
    annual = gross_pay * periods
    fed = federal_tax(annual, federal_bpa, federal_rate)
    prov = ontario_tax(annual, provincial_bpa, provincial_rate)
    total = fed + prov
    return TaxBreakdown(
        gross_pay=round2(gross_pay),
        annualized_gross=round2(annual),
        federal_bpa=federal_bpa,
        provincial_bpa=provincial_bpa,
        federal_taxable_income=round2(max(0.0, annual - federal_bpa)),
        provincial_taxable_income=round2(max(0.0, annual - provincial_bpa)),
        federal_tax_annual=round2(fed),
        provincial_tax_annual=round2(prov),
        total_tax_annual=round2(total),
        tax_per_period=round2(total / periods),
        effective_tax_rate=round2(total / annual * 100) if annual > 0 else 0.0,
    )

def compare_tax_scenarios(
    gross_pay: float,
    frequency: str,
    current: Optional[StatutoryRateTable] = None,
    previous: Optional[StatutoryRateTable] = None,
) -> List[Dict[str, Any]]:
    """Withholding under this year's TD1 amounts, last year's, and no claim at all."""
    current = current or get_rate_table()
    if previous is None:
        previous = get_rate_table(current.year - 1)
    scenarios = [
        (f"{current.year} TD1", current.federal_bpa, current.provincial_bpa),
        (f"{previous.year} TD1", previous.federal_bpa, previous.provincial_bpa),
        ("Zero TD1 (maximum tax)", 0.0, 0.0),
    ]
    return [
        {
            "name": name,
            "federal_bpa": fed_bpa,
            "provincial_bpa": prov_bpa,
            "breakdown": tax_breakdown(
                gross_pay, frequency, fed_bpa, prov_bpa,
                current.federal_tax_rate, current.provincial_tax_rate,
            ),
        }
        for name, fed_bpa, prov_bpa in scenarios
    ]

def estimate_tax_rate(
    annual_salary: float,
    federal_bpa: float = 16129.0,
    provincial_bpa: float = 12747.0,
) -> float:
    """Effective tax rate (%) on an annual salary."""
    if annual_salary <= 0:
        return 0.0
    total = federal_tax(annual_salary, federal_bpa) + ontario_tax(annual_salary, provincial_bpa)
    return round2(total / annual_salary * 100)

def validate_td1_amounts(federal: float, provincial: float) -> None:
    if federal < 0 or federal > 50000:
        raise PayrollValidationError("Federal TD1 amount must be between $0 and $50,000")
    if provincial < 0 or provincial > 50000:
        raise PayrollValidationError("Provincial TD1 amount must be between $0 and $50,000")
