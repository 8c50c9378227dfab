import numbers
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from canpay.core.utils import round2
from canpay.payroll.ytd import read_history_entry

MONEY_COLUMNS = [
    "gross_pay", "regular_pay", "overtime_pay",
    "cpp1_employee", "cpp1_employer", "cpp2_employee", "cpp2_employer",
    "ei_employee", "ei_employer", "income_tax", "wsib",
    "vacation_accrued", "vacation_paid",
    "total_deductions", "employer_costs", "net_pay",
]

EXPORT_COLUMNS = [
    "employee_name", "employee_id", "pay_date", "pay_period",
    "regular_hours", "overtime_hours",
    *MONEY_COLUMNS,
    "vacation_rate",
    "ytd_gross", "ytd_cpp1", "ytd_cpp2", "ytd_ei", "ytd_tax",
    "ytd_vacation_accrued", "ytd_vacation_paid",
    "federal_bpa", "provincial_bpa",
]

def _num(mapping: Dict[str, Any], key: str) -> float:
    value = mapping.get(key)
    return float(value) if isinstance(value, numbers.Real) and not isinstance(value, bool) else 0.0

def prepare_export_record(record: Any) -> Optional[Dict[str, Any]]:
    """Flatten one payroll run into a single row for CSV/JSON/spreadsheet export."""
    entry = read_history_entry(record)
    if entry is None:
        return None
    calc = entry.calculations
    lines = {}
    for line in calc.get("lines") or ():
        if isinstance(line, dict) and line.get("code"):
            lines.setdefault(str(line["code"]).upper(), line)
    regular = lines.get("REG", {})
    overtime = lines.get("OT", {})
    after = calc.get("ytd_after") or {}

    row = {
        "employee_name": entry.employee_name,
        "employee_id": entry.employee_id,
        "pay_date": entry.pay_date.isoformat(),
        "pay_period": calc.get("frequency"),
        "regular_hours": _num(regular, "hours"),
        "overtime_hours": _num(overtime, "hours"),
        "gross_pay": _num(calc, "gross"),
        "regular_pay": _num(regular, "amount"),
        "overtime_pay": _num(overtime, "amount"),
        "cpp1_employee": _num(calc, "cpp1_employee"),
        "cpp1_employer": _num(calc, "cpp1_employer"),
        "cpp2_employee": _num(calc, "cpp2_employee"),
        "cpp2_employer": _num(calc, "cpp2_employer"),
        "ei_employee": _num(calc, "ei_employee"),
        "ei_employer": _num(calc, "ei_employer"),
        "income_tax": _num(calc, "income_tax"),
        "wsib": _num(calc, "wsib_premium"),
        "vacation_accrued": _num(calc, "vacation_accrued"),
        "vacation_paid": _num(calc, "vacation_paid"),
        "vacation_rate": _num(calc, "vacation_rate"),
        "net_pay": _num(calc, "net"),
        "ytd_gross": _num(after, "gross"),
        "ytd_cpp1": _num(after, "cpp1"),
        "ytd_cpp2": _num(after, "cpp2"),
        "ytd_ei": _num(after, "ei"),
        "ytd_tax": _num(after, "income_tax"),
        "ytd_vacation_accrued": _num(after, "vacation_accrued"),
        "ytd_vacation_paid": _num(after, "vacation_paid"),
        "federal_bpa": _num(calc, "federal_bpa"),
        "provincial_bpa": _num(calc, "provincial_bpa"),
    }
    row["total_deductions"] = round2(
        row["cpp1_employee"] + row["cpp2_employee"] + row["ei_employee"] + row["income_tax"]
    )
    row["employer_costs"] = round2(
        row["cpp1_employer"] + row["cpp2_employer"] + row["ei_employer"] + row["wsib"]
    )
    return row

class PayrollRegister:
    """Tabular view over saved payroll runs."""

    def __init__(self, history: Iterable[Any]):
        self.history = list(history or ())

    def records(self) -> List[Dict[str, Any]]:
        rows = [prepare_export_record(r) for r in self.history]
        return sorted((r for r in rows if r), key=lambda r: (r["pay_date"], r["employee_name"] or ""))

    def to_dataframe(self) -> pd.DataFrame:
        rows = self.records()
        if not rows:
            return pd.DataFrame(columns=EXPORT_COLUMNS)
        return pd.DataFrame(rows, columns=EXPORT_COLUMNS)

    def totals(self) -> Dict[str, float]:
        df = self.to_dataframe()
        if df.empty:
            return {col: 0.0 for col in MONEY_COLUMNS}
        return {col: round2(float(df[col].sum())) for col in MONEY_COLUMNS}

    def employee_totals(self) -> pd.DataFrame:
        df = self.to_dataframe()
        if df.empty:
            return pd.DataFrame(columns=["employee_name", "runs", *MONEY_COLUMNS])
        grouped = df.groupby("employee_name", sort=True)
        summary = grouped[MONEY_COLUMNS].sum().round(2)
        summary.insert(0, "runs", grouped.size())
        return summary.reset_index()
