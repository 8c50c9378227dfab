"""
Data model for payroll calculations.

Every model is frozen: a calculation result is built once by the engine and
only ever read afterwards (paystubs, exports, history). Field names are the
keys used when results are serialized into payroll history.
"""
from datetime import date
from typing import Dict, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from canpay.core.config import settings
from canpay.core.utils import round2

Frequency = Literal["weekly", "biweekly", "semimonthly", "monthly"]
PayType = Literal["hourly", "salary"]
VacationMode = Literal["accrue", "pay"]

MAX_VACATION_RATE = 15.0


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class PayPeriodConfig(_Frozen):
    """Employee and pay-period settings for a single calculation."""

    employee_name: str = Field(min_length=1)
    employee_id: Optional[str] = None
    pay_date: date
    frequency: Frequency = "biweekly"
    pay_type: PayType = "hourly"
    vacation_mode: VacationMode = "accrue"
    vacation_rate: float = Field(default_factory=lambda: settings.DEFAULT_VACATION_RATE, ge=0, le=MAX_VACATION_RATE)
    # explicit payout used instead of the calculated amount in "pay" mode
    vacation_amount: float = Field(0.0, ge=0)
    # None means "use the basic personal amounts from the rate table"
    federal_bpa: Optional[float] = Field(None, ge=0)
    provincial_bpa: Optional[float] = Field(None, ge=0)


class EarningsLine(_Frozen):
    code: str = Field(min_length=1)
    description: str = ""
    rate: Optional[float] = Field(None, ge=0)
    hours: Optional[float] = Field(None, ge=0)
    amount: float = Field(0.0, ge=0)
    ytd_hours: float = Field(0.0, ge=0)
    ytd_amount: float = Field(0.0, ge=0)

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("amount", "ytd_hours", "ytd_amount", mode="before")
    @classmethod
    def _blank_is_zero(cls, value):
        return 0.0 if value is None else value

    def resolved_amount(self) -> float:
        """Amount for the line, falling back to rate x hours when no amount was entered."""
        if not self.amount and self.rate and self.hours:
            return round2(self.rate * self.hours)
        return self.amount


class YTDState(_Frozen):
    """Year-to-date totals for one employee, all before (or after) a given period."""

    gross: float = Field(0.0, ge=0)
    pensionable: float = Field(0.0, ge=0)
    insurable: float = Field(0.0, ge=0)
    wsib_assessable: float = Field(0.0, ge=0)
    wsib_premium: float = Field(0.0, ge=0)
    cpp1: float = Field(0.0, ge=0)
    cpp2: float = Field(0.0, ge=0)
    ei: float = Field(0.0, ge=0)
    income_tax: float = Field(0.0, ge=0)
    vacation_accrued: float = Field(0.0, ge=0)
    vacation_paid: float = Field(0.0, ge=0)


class StatutoryRateTable(_Frozen):
    """Rates and thresholds for one tax year. Percentages are stored as percent (5.95, not 0.0595)."""

    year: int
    cpp_rate: float = Field(ge=0, le=100)
    cpp2_rate: float = Field(ge=0, le=100)
    cpp_basic_exemption: float = Field(ge=0)
    ympe: float = Field(ge=0)
    yampe: float = Field(ge=0)
    ei_rate: float = Field(ge=0, le=100)
    ei_employer_multiplier: float = Field(1.4, ge=0)
    ei_max_insurable: float = Field(ge=0)
    wsib_rate: float = Field(ge=0, le=100)
    wsib_max_assessable: float = Field(100000.0, ge=0)
    federal_bpa: float = Field(ge=0)
    provincial_bpa: float = Field(ge=0)
    federal_tax_rate: float = Field(14.5, ge=0, le=100)
    provincial_tax_rate: float = Field(5.05, ge=0, le=100)

    @model_validator(mode="after")
    def _check_ceilings(self):
        if self.yampe < self.ympe:
            raise ValueError(f"YAMPE ({self.yampe}) must not be below YMPE ({self.ympe})")
        if self.cpp_basic_exemption > self.ympe:
            raise ValueError("CPP basic exemption cannot exceed YMPE")
        return self


class CPPResult(_Frozen):
    cpp1_employee: float
    cpp1_employer: float
    cpp2_employee: float
    cpp2_employer: float
    pensionable_tier1_this: float
    pensionable_tier2_this: float
    new_ytd_cpp1: float
    new_ytd_cpp2: float


class EIResult(_Frozen):
    ei_employee: float
    ei_employer: float
    insurable_this: float
    new_ytd_ei: float


class WSIBResult(_Frozen):
    premium: float
    assessable_this: float
    new_ytd_wsib: float


class VacationResult(_Frozen):
    vacation_paid: float
    vacation_accrued: float
    # always 0 when accruing
    amount_added_to_gross: float


class TaxBreakdown(_Frozen):
    gross_pay: float
    annualized_gross: float
    federal_bpa: float
    provincial_bpa: float
    federal_taxable_income: float
    provincial_taxable_income: float
    federal_tax_annual: float
    provincial_tax_annual: float
    total_tax_annual: float
    tax_per_period: float
    effective_tax_rate: float


class PayrollCalculationResult(_Frozen):
    # employee and period
    employee_name: str
    employee_id: Optional[str] = None
    pay_date: date
    frequency: Frequency
    pay_type: PayType
    vacation_mode: VacationMode
    vacation_rate: float

    # earnings
    lines: Tuple[EarningsLine, ...] = ()
    gross: float
    pensionable: float
    insurable: float
    wsib_assessable: float
    pensionable_tier1_this: float
    pensionable_tier2_this: float
    insurable_this: float
    assessable_this: float

    # deductions and employer costs
    cpp_exemption_per_period: float
    cpp1_employee: float
    cpp1_employer: float
    cpp2_employee: float
    cpp2_employer: float
    ei_employee: float
    ei_employer: float
    wsib_premium: float
    income_tax: float
    total_deductions: float
    net: float

    vacation_accrued: float
    vacation_paid: float

    ytd_before: YTDState
    ytd_after: YTDState

    federal_bpa: float
    provincial_bpa: float
    rate_table: StatutoryRateTable

    def earnings_by_code(self) -> Dict[str, EarningsLine]:
        return {line.code: line for line in self.lines}


class PayrollRecord(_Frozen):
    """A saved payroll run as it appears in an employee's history."""

    employee_name: str
    employee_id: Optional[str] = None
    pay_date: date
    frequency: Frequency = "biweekly"
    calculations: Optional[PayrollCalculationResult] = None

    @classmethod
    def from_result(cls, result: PayrollCalculationResult) -> "PayrollRecord":
        return cls(
            employee_name=result.employee_name,
            employee_id=result.employee_id,
            pay_date=result.pay_date,
            frequency=result.frequency,
            calculations=result,
        )
