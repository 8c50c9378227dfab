"""
Payroll calculation engine.

Combines earnings lines, vacation, CPP, EI, WSIB and income tax into one
``PayrollCalculationResult``. Each statutory module rounds its own output to
the cent and the engine composes those rounded amounts.
"""
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError

from canpay.core.exceptions import PayrollValidationError
from canpay.core.schemas import (
    EarningsLine,
    PayPeriodConfig,
    PayrollCalculationResult,
    PayrollRecord,
    StatutoryRateTable,
    YTDState,
)
from canpay.core.utils import periods_per_year, round2, setup_logging
from canpay.payroll.vacation import calculate_vacation
from canpay.payroll.ytd import employee_history, fold_earnings_ytd, fold_ytd
from canpay.tax.cpp import compute_cpp
from canpay.tax.ei import compute_ei
from canpay.tax.income_tax import estimate_income_tax
from canpay.tax.rates import apply_overrides, build_rate_table, get_rate_table
from canpay.tax.wsib import compute_wsib

VACATION_PAY = "VAC"
BANKED_HOURS = "BANKHRS"

def _coerce(model, value: Any, label: str):
    if isinstance(value, model):
        return value
    if isinstance(value, BaseModel):
        value = value.model_dump()
    try:
        return model.model_validate(value)
    except ValidationError as exc:
        raise PayrollValidationError.from_pydantic(label, exc) from exc

class PayrollEngine:
    def __init__(self, rate_table: Union[StatutoryRateTable, Mapping[str, Any], None] = None, logger=None):
        if rate_table is not None and not isinstance(rate_table, StatutoryRateTable):
            rate_table = build_rate_table(rate_table)
        # None: pick the table matching each pay date's year
        self.rate_table = rate_table
        self.logger = logger or setup_logging("engine")

    def rate_table_for(self, config: PayPeriodConfig, rate_overrides: Optional[Mapping[str, Any]] = None) -> StatutoryRateTable:
        table = self.rate_table or get_rate_table(config.pay_date.year)
        return apply_overrides(table, rate_overrides)

    def process_earnings_lines(
        self,
        lines: List[EarningsLine],
        earnings_ytd: Mapping[str, Mapping[str, float]],
    ) -> Dict[str, Any]:
        """
        Resolve line amounts, roll per-code YTD forward and sum the subtotals.

        BANKHRS lines are banked for later and count toward nothing this period.
        VAC lines are paid vacation: they are earnings, but vacation is not
        earned on them and they are not WSIB-assessable.
        """
        processed = []
        gross = pensionable = insurable = wsib_assessable = vacation_base = vacation_lines = 0.0

        for line in lines:
            amount = line.resolved_amount()
            hours = line.hours or 0.0
            history = earnings_ytd.get(line.code, {})
            processed.append(line.model_copy(update={
                "amount": amount,
                "ytd_hours": round2(history.get("ytd_hours", 0.0) + hours),
                "ytd_amount": round2(history.get("ytd_amount", 0.0) + amount),
            }))

            if line.code != BANKED_HOURS:
                gross += amount
                pensionable += amount
                insurable += amount
            if line.code not in (VACATION_PAY, BANKED_HOURS):
                vacation_base += amount
                wsib_assessable += amount
            if line.code == VACATION_PAY:
                vacation_lines += amount

        return {
            "lines": tuple(processed),
            "gross": round2(gross),
            "pensionable": round2(pensionable),
            "insurable": round2(insurable),
            "wsib_assessable": round2(wsib_assessable),
            "vacation_base": round2(vacation_base),
            "vacation_lines": round2(vacation_lines),
        }

    def calculate(
        self,
        period_config: Union[PayPeriodConfig, Mapping[str, Any]],
        earnings_lines: Iterable[Union[EarningsLine, Mapping[str, Any]]],
        ytd_state: Union[YTDState, Mapping[str, Any], None] = None,
        rate_overrides: Optional[Mapping[str, Any]] = None,
        history: Optional[Iterable[Any]] = None,
    ) -> PayrollCalculationResult:
        """
        Calculate one pay period for one employee.

        Args:
            period_config: Employee, pay date, frequency, vacation and TD1 settings
            earnings_lines: Earnings for the period (REG, OT, VAC, BANKHRS, ...)
            ytd_state: Totals before this period; derived from ``history`` when omitted
            rate_overrides: Rate table fields to replace, e.g. {'wsib_rate': 1.2}
            history: Earlier payroll records, any order, any employees
        """
        config = _coerce(PayPeriodConfig, period_config, "pay period config")
        lines = [_coerce(EarningsLine, line, f"earnings line {i + 1}") for i, line in enumerate(earnings_lines)]
        table = self.rate_table_for(config, rate_overrides)
        # parsed once; both YTD folds read the same entries
        entries = employee_history(config.employee_name, history, config.pay_date.year, config.employee_id)

        if ytd_state is None:
            ytd = fold_ytd(entries)
        else:
            ytd = _coerce(YTDState, ytd_state, "YTD state")

        periods = periods_per_year(config.frequency)
        exemption = round2(table.cpp_basic_exemption / periods)
        federal_bpa = table.federal_bpa if config.federal_bpa is None else config.federal_bpa
        provincial_bpa = table.provincial_bpa if config.provincial_bpa is None else config.provincial_bpa

        # 1-3. earnings lines and subtotals
        totals = self.process_earnings_lines(lines, fold_earnings_ytd(entries))

        # 4. vacation; only a payout reaches gross
        vacation = calculate_vacation(
            totals["vacation_base"], config.vacation_rate, config.vacation_mode, config.vacation_amount
        )
        added = vacation.amount_added_to_gross
        gross = round2(totals["gross"] + added)
        pensionable = round2(totals["pensionable"] + added)
        insurable = round2(totals["insurable"] + added)
        wsib_assessable = round2(totals["wsib_assessable"] + added)

        # 5. statutory contributions against pre-period YTD
        cpp = compute_cpp(
            pensionable, ytd.pensionable, ytd.cpp1, ytd.cpp2,
            table.cpp_rate, table.cpp2_rate, exemption, table.ympe, table.yampe,
        )
        ei = compute_ei(
            insurable, ytd.insurable, ytd.ei,
            table.ei_rate, table.ei_employer_multiplier, table.ei_max_insurable,
        )
        wsib = compute_wsib(wsib_assessable, ytd.wsib_assessable, table.wsib_rate, table.wsib_max_assessable)

        # 6. income tax
        tax = estimate_income_tax(
            gross, config.frequency, federal_bpa, provincial_bpa,
            table.federal_tax_rate, table.provincial_tax_rate,
        )

        # 7. net pay; WSIB is an employer cost
        withheld = tax + cpp.cpp1_employee + cpp.cpp2_employee + ei.ei_employee
        net = round2(gross - withheld)

        vacation_paid = round2(totals["vacation_lines"] + vacation.vacation_paid)
        ytd_after = YTDState(
            gross=round2(ytd.gross + gross),
            pensionable=round2(ytd.pensionable + pensionable),
            insurable=round2(ytd.insurable + insurable),
            wsib_assessable=round2(ytd.wsib_assessable + wsib_assessable),
            wsib_premium=round2(ytd.wsib_premium + wsib.premium),
            cpp1=cpp.new_ytd_cpp1,
            cpp2=cpp.new_ytd_cpp2,
            ei=ei.new_ytd_ei,
            income_tax=round2(ytd.income_tax + tax),
            vacation_accrued=round2(ytd.vacation_accrued + vacation.vacation_accrued),
            vacation_paid=round2(ytd.vacation_paid + vacation_paid),
        )

        result = PayrollCalculationResult(
            employee_name=config.employee_name,
            employee_id=config.employee_id,
            pay_date=config.pay_date,
            frequency=config.frequency,
            pay_type=config.pay_type,
            vacation_mode=config.vacation_mode,
            vacation_rate=config.vacation_rate,
            lines=totals["lines"],
            gross=gross,
            pensionable=pensionable,
            insurable=insurable,
            wsib_assessable=wsib_assessable,
            pensionable_tier1_this=cpp.pensionable_tier1_this,
            pensionable_tier2_this=cpp.pensionable_tier2_this,
            insurable_this=ei.insurable_this,
            assessable_this=wsib.assessable_this,
            cpp_exemption_per_period=exemption,
            cpp1_employee=cpp.cpp1_employee,
            cpp1_employer=cpp.cpp1_employer,
            cpp2_employee=cpp.cpp2_employee,
            cpp2_employer=cpp.cpp2_employer,
            ei_employee=ei.ei_employee,
            ei_employer=ei.ei_employer,
            wsib_premium=wsib.premium,
            income_tax=tax,
            total_deductions=round2(withheld),
            net=net,
            vacation_accrued=vacation.vacation_accrued,
            vacation_paid=vacation_paid,
            ytd_before=ytd,
            ytd_after=ytd_after,
            federal_bpa=federal_bpa,
            provincial_bpa=provincial_bpa,
            rate_table=table,
        )
        self.logger.info(
            "Calculated %s payroll for %s dated %s: gross=%.2f net=%.2f",
            config.frequency, config.employee_name, config.pay_date, gross, net,
        )
        return result

    def run_payroll(
        self,
        requests: Iterable[Mapping[str, Any]],
        history: Optional[Iterable[Any]] = None,
    ) -> List[PayrollCalculationResult]:
        """
        Calculate several periods in pay-date order.

        Each request is a dict with ``period_config``, ``earnings_lines`` and
        optionally ``rate_overrides``. Every result is added to the working
        history, so a later period for the same employee starts from the
        YTD the earlier one produced.
        """
        prepared = []
        for i, request in enumerate(requests):
            config = _coerce(PayPeriodConfig, request.get("period_config"), f"pay period config {i + 1}")
            prepared.append((config, request))
        prepared.sort(key=lambda item: item[0].pay_date)

        working = list(history or ())
        results = []
        for config, request in prepared:
            result = self.calculate(
                config,
                request.get("earnings_lines") or (),
                rate_overrides=request.get("rate_overrides"),
                history=working,
            )
            working.append(PayrollRecord.from_result(result))
            results.append(result)
        return results

def calculate_payroll(
    period_config: Union[PayPeriodConfig, Mapping[str, Any]],
    earnings_lines: Iterable[Union[EarningsLine, Mapping[str, Any]]],
    ytd_state: Union[YTDState, Mapping[str, Any], None] = None,
    rate_overrides: Optional[Mapping[str, Any]] = None,
    history: Optional[Iterable[Any]] = None,
    rate_table: Union[StatutoryRateTable, Mapping[str, Any], None] = None,
) -> PayrollCalculationResult:
    return PayrollEngine(rate_table=rate_table).calculate(
        period_config, earnings_lines, ytd_state, rate_overrides, history
    )
