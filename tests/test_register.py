from datetime import date

from canpay.core.schemas import PayrollRecord
from canpay.payroll.engine import PayrollEngine
from canpay.reports.register import EXPORT_COLUMNS, PayrollRegister, prepare_export_record

LINES = [
    {"code": "REG", "rate": 25.0, "hours": 80.0},
    {"code": "OT", "rate": 37.5, "hours": 2.0},
]

def _history():
    engine = PayrollEngine()
    results = engine.run_payroll([
        {"period_config": {"employee_name": "Jane Doe", "pay_date": date(2025, 3, 14)}, "earnings_lines": LINES},
        {"period_config": {"employee_name": "Jane Doe", "pay_date": date(2025, 3, 28)}, "earnings_lines": LINES},
        {"period_config": {"employee_name": "John Smith", "pay_date": date(2025, 3, 14)}, "earnings_lines": LINES[:1]},
    ])
    return [PayrollRecord.from_result(r) for r in results], results

def test_export_record_fields():
    history, results = _history()
    result = results[0]
    row = prepare_export_record(history[0])
    assert row["employee_name"] == "Jane Doe"
    assert row["pay_date"] == "2025-03-14"
    assert row["pay_period"] == "biweekly"
    assert row["regular_hours"] == 80.0
    assert row["regular_pay"] == 2000.0
    assert row["overtime_hours"] == 2.0
    assert row["overtime_pay"] == 75.0
    assert row["gross_pay"] == 2075.0
    assert row["net_pay"] == result.net
    assert row["total_deductions"] == result.total_deductions
    assert row["employer_costs"] == round(
        result.cpp1_employer + result.cpp2_employer + result.ei_employer + result.wsib_premium, 2
    )
    assert row["ytd_gross"] == 2075.0
    assert row["federal_bpa"] == 16129

def test_export_record_accepts_bare_result_and_skips_empty():
    _, results = _history()
    assert prepare_export_record(results[0])["gross_pay"] == 2075.0
    assert prepare_export_record({"employee_name": "Jane Doe", "pay_date": "2025-03-14"}) is None

def test_register_dataframe_and_totals():
    history, results = _history()
    register = PayrollRegister(history)
    df = register.to_dataframe()
    assert list(df.columns) == EXPORT_COLUMNS
    assert len(df) == 3
    assert list(df["pay_date"]) == ["2025-03-14", "2025-03-14", "2025-03-28"]
    totals = register.totals()
    assert totals["gross_pay"] == 2075.0 * 2 + 2000.0
    assert totals["net_pay"] == round(sum(r.net for r in results), 2)

def test_employee_totals():
    history, _ = _history()
    summary = PayrollRegister(history).employee_totals()
    jane = summary[summary["employee_name"] == "Jane Doe"].iloc[0]
    assert jane["runs"] == 2
    assert jane["gross_pay"] == 4150.0
    assert list(summary["employee_name"]) == ["Jane Doe", "John Smith"]

def test_empty_register():
    register = PayrollRegister([])
    assert register.to_dataframe().empty
    assert list(register.to_dataframe().columns) == EXPORT_COLUMNS
    assert register.totals()["gross_pay"] == 0.0
    assert register.employee_totals().empty
