from datetime import date

import numpy as np

from canpay.core.schemas import YTDState
from canpay.payroll.ytd import (
    calculate_earnings_ytd,
    calculate_employee_ytd,
    employee_history,
    employee_payroll_summary,
    read_history_entry,
)

def _record(name, pay_date, gross, employee_id=None, **extra):
    calc = {
        "gross": gross,
        "pensionable": gross,
        "insurable": gross,
        "wsib_assessable": gross,
        "wsib_premium": 10.0,
        "cpp1_employee": 100.0,
        "cpp2_employee": 0.0,
        "ei_employee": 30.0,
        "income_tax": 250.0,
        "vacation_accrued": 40.0,
        "vacation_paid": 0.0,
        "lines": [{"code": "REG", "hours": 40.0, "amount": gross}],
    }
    calc.update(extra)
    return {"employee_name": name, "employee_id": employee_id, "pay_date": pay_date, "calculations": calc}

def test_only_named_employee_in_date_order():
    history = [
        _record("Jane Doe", "2025-02-14", 1500.0),
        _record("John Smith", "2025-01-31", 9999.0),
        _record("Jane Doe", "2025-01-17", 1000.0),
        _record("Jane Doe", "2025-01-31", 1200.0),
    ]
    ytd = calculate_employee_ytd("Jane Doe", history, 2025)
    assert isinstance(ytd, YTDState)
    assert ytd.gross == 3700.0
    assert ytd.cpp1 == 300.0
    assert ytd.ei == 90.0
    assert ytd.income_tax == 750.0
    assert ytd.wsib_premium == 30.0
    assert ytd.vacation_accrued == 120.0
    entries = employee_history("Jane Doe", history, 2025)
    assert [e.pay_date for e in entries] == [date(2025, 1, 17), date(2025, 1, 31), date(2025, 2, 14)]
    # input order does not matter
    assert calculate_employee_ytd("Jane Doe", list(reversed(history)), 2025) == ytd

def test_name_match_ignores_case_and_spaces():
    history = [_record("  jane DOE ", "2025-01-17", 1000.0)]
    assert calculate_employee_ytd("Jane Doe", history, 2025).gross == 1000.0

def test_other_years_excluded():
    history = [
        _record("Jane Doe", "2024-12-27", 5000.0),
        _record("Jane Doe", "2025-01-10", 1000.0),
    ]
    assert calculate_employee_ytd("Jane Doe", history, 2025).gross == 1000.0
    assert calculate_employee_ytd("Jane Doe", history, 2024).gross == 5000.0

def test_empty_history():
    assert calculate_employee_ytd("Jane Doe", [], 2025) == YTDState()
    assert calculate_employee_ytd("Jane Doe", None, 2025) == YTDState()

def test_employee_id_preferred_over_name():
    history = [
        _record("Jane Doe", "2025-01-17", 1000.0, employee_id="E1"),
        _record("Jane Doe", "2025-01-17", 2000.0, employee_id="E2"),
        # saved before ids existed
        _record("Jane Doe", "2025-01-03", 500.0),
    ]
    assert calculate_employee_ytd("Jane Doe", history, 2025, employee_id="E1").gross == 1500.0
    assert calculate_employee_ytd("Jane Doe", history, 2025, employee_id="E2").gross == 2500.0
    assert calculate_employee_ytd("Jane Doe", history, 2025).gross == 3500.0

def test_malformed_records_skipped():
    history = [
        _record("Jane Doe", "2025-01-17", 1000.0),
        {"employee_name": "Jane Doe", "pay_date": "2025-01-31", "calculations": None},
        {"employee_name": "Jane Doe", "pay_date": "2025-01-31"},
        _record("Jane Doe", "not a date", 700.0),
        _record("Jane Doe", ["2025-01-31"], 700.0),
        _record("Jane Doe", {"d": 1}, 700.0),
        _record("Jane Doe", 20250131, 700.0),
        _record("Jane Doe", "2025-02-14", "lots"),
        _record("Jane Doe", "2025-02-28", 300.0, income_tax=-5.0),
        "garbage",
        None,
    ]
    ytd = calculate_employee_ytd("Jane Doe", history, 2025)
    assert ytd.gross == 1000.0
    assert ytd.income_tax == 250.0

def test_missing_amounts_count_as_zero():
    record = _record("Jane Doe", "2025-01-17", 1000.0)
    del record["calculations"]["cpp2_employee"]
    record["calculations"]["vacation_paid"] = None
    ytd = calculate_employee_ytd("Jane Doe", [record], 2025)
    assert ytd.cpp2 == 0.0
    assert ytd.vacation_paid == 0.0

def test_numpy_amounts_are_counted():
    record = _record("Jane Doe", "2025-01-17", np.int64(1000), income_tax=np.float64(250.0), lines=[
        {"code": "REG", "hours": np.int64(40), "amount": np.int64(1000)},
    ])
    ytd = calculate_employee_ytd("Jane Doe", [record], 2025)
    assert ytd.gross == 1000.0
    assert ytd.income_tax == 250.0
    assert calculate_earnings_ytd("Jane Doe", [record], 2025) == {"REG": {"ytd_hours": 40.0, "ytd_amount": 1000.0}}

def test_read_history_entry_falls_back_to_calculation_fields():
    entry = read_history_entry({"calculations": {"employee_name": "Jane Doe", "pay_date": "2025-03-01"}})
    assert entry.employee_name == "Jane Doe"
    assert entry.pay_date == date(2025, 3, 1)
    assert read_history_entry({"calculations": {"pay_date": "2025-03-01"}}) is None

def test_earnings_ytd_by_code():
    history = [
        _record("Jane Doe", "2025-01-17", 1000.0, lines=[
            {"code": "REG", "hours": 40.0, "amount": 1000.0},
            {"code": "ot", "hours": 2.0, "amount": 75.0},
        ]),
        _record("Jane Doe", "2025-01-31", 1000.0, lines=[{"code": "REG", "hours": 40.0, "amount": 1000.0}]),
        _record("Jane Doe", "2025-02-14", 1000.0, lines="REG"),
        _record("Jane Doe", "2025-02-28", 1000.0, lines=[{"code": "REG", "hours": "forty", "amount": 1000.0}]),
        _record("John Smith", "2025-01-17", 1000.0),
    ]
    earnings = calculate_earnings_ytd("Jane Doe", history, 2025)
    assert earnings == {
        "REG": {"ytd_hours": 80.0, "ytd_amount": 2000.0},
        "OT": {"ytd_hours": 2.0, "ytd_amount": 75.0},
    }

def test_payroll_summary():
    history = [
        _record("Jane Doe", "2025-02-14", 1500.0),
        _record("Jane Doe", "2025-01-17", 1000.0),
    ]
    summary = employee_payroll_summary("Jane Doe", history, 2025)
    assert summary["total_runs"] == 2
    assert summary["payrolls"][0] is history[1]
    assert summary["date_range"] == {"earliest": date(2025, 1, 17), "latest": date(2025, 2, 14)}
    assert employee_payroll_summary("Nobody", history, 2025)["date_range"] is None
