"""
Year-to-date balances derived from payroll history.

YTD is never stored: it is rebuilt for every calculation by replaying the
employee's saved payroll runs for the calendar year in pay-date order. History
entries may be ``PayrollRecord`` models, bare ``PayrollCalculationResult``s or
plain dicts loaded from storage. Entries that cannot be read (no calculations,
bad date, non-numeric amounts) are skipped with a warning so that one damaged
record does not block a pay run.
"""
import logging
import math
import numbers
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional

from pydantic import BaseModel

from canpay.core.config import settings
from canpay.core.schemas import PayrollCalculationResult, YTDState
from canpay.core.utils import parse_date, round2

logger = logging.getLogger(f"{settings.APP_NAME}.engine.ytd")

# YTDState field -> per-period field on a calculation result
YTD_SOURCE_FIELDS = {
    "gross": "gross",
    "pensionable": "pensionable",
    "insurable": "insurable",
    "wsib_assessable": "wsib_assessable",
    "wsib_premium": "wsib_premium",
    "cpp1": "cpp1_employee",
    "cpp2": "cpp2_employee",
    "ei": "ei_employee",
    "income_tax": "income_tax",
    "vacation_accrued": "vacation_accrued",
    "vacation_paid": "vacation_paid",
}

class MalformedRecord(ValueError):
    pass

class HistoryEntry(NamedTuple):
    pay_date: date
    employee_name: Optional[str]
    employee_id: Optional[str]
    calculations: Mapping[str, Any]
    record: Any

def _as_mapping(value: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, Mapping):
        return value
    return None

def _amount(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise MalformedRecord(f"non-numeric amount {value!r}")
    value = float(value)
    if not math.isfinite(value) or value < 0:
        raise MalformedRecord(f"invalid amount {value!r}")
    return value

def read_history_entry(record: Any) -> Optional[HistoryEntry]:
    if isinstance(record, PayrollCalculationResult):
        data = {"calculations": record}
    else:
        data = _as_mapping(record)
        if data is None:
            logger.warning("Skipping history entry of type %s", type(record).__name__)
            return None

    calc = _as_mapping(data.get("calculations"))
    if calc is None:
        logger.warning("Skipping history entry without calculations: %s", data.get("employee_name"))
        return None

    name = data.get("employee_name") or calc.get("employee_name")
    employee_id = data.get("employee_id") or calc.get("employee_id")
    pay_date = parse_date(data.get("pay_date") or calc.get("pay_date"))
    if not name and not employee_id:
        logger.warning("Skipping history entry with no employee")
        return None
    if pay_date is None:
        logger.warning("Skipping history entry for %s with unreadable pay date", name)
        return None
    return HistoryEntry(pay_date, name, employee_id, calc, record)

def _is_same_employee(entry: HistoryEntry, employee_name: str, employee_id: Optional[str]) -> bool:
    if employee_id and entry.employee_id:
        return str(entry.employee_id) == str(employee_id)
    # legacy records saved before employee ids existed
    if not entry.employee_name or not employee_name:
        return False
    matched = entry.employee_name.strip().lower() == employee_name.strip().lower()
    if matched and employee_id:
        logger.debug("Matched %s record dated %s by name only", employee_name, entry.pay_date)
    return matched

def employee_history(
    employee_name: str,
    history: Iterable[Any],
    year: Optional[int] = None,
    employee_id: Optional[str] = None,
) -> List[HistoryEntry]:
    """Readable history entries for one employee and calendar year, oldest first."""
    year = year or date.today().year
    entries = []
    for record in history or ():
        entry = read_history_entry(record)
        if entry is None:
            continue
        if entry.pay_date.year == year and _is_same_employee(entry, employee_name, employee_id):
            entries.append(entry)
    return sorted(entries, key=lambda e: e.pay_date)

def fold_ytd(entries: Iterable[HistoryEntry]) -> YTDState:
    """Sum already-filtered history entries into a ``YTDState``, rounding at each step."""
    totals = {field: 0.0 for field in YTD_SOURCE_FIELDS}
    for entry in entries:
        try:
            increments = {
                field: _amount(entry.calculations.get(source))
                for field, source in YTD_SOURCE_FIELDS.items()
            }
        except MalformedRecord as exc:
            logger.warning("Skipping %s record dated %s: %s", entry.employee_name, entry.pay_date, exc)
            continue
        for field, value in increments.items():
            totals[field] = round2(totals[field] + value)
    return YTDState(**totals)

def fold_earnings_ytd(entries: Iterable[HistoryEntry]) -> Dict[str, Dict[str, float]]:
    earnings: Dict[str, Dict[str, float]] = {}
    for entry in entries:
        lines = entry.calculations.get("lines") or ()
        if not isinstance(lines, (list, tuple)):
            logger.warning("Skipping %s earnings dated %s: lines is not a list", entry.employee_name, entry.pay_date)
            continue
        try:
            parsed = []
            for line in lines:
                line = _as_mapping(line)
                if line is None or not line.get("code"):
                    raise MalformedRecord("earnings line without a code")
                parsed.append((str(line["code"]).strip().upper(), _amount(line.get("hours")), _amount(line.get("amount"))))
        except MalformedRecord as exc:
            logger.warning("Skipping %s earnings dated %s: %s", entry.employee_name, entry.pay_date, exc)
            continue
        for code, hours, amount in parsed:
            totals = earnings.setdefault(code, {"ytd_hours": 0.0, "ytd_amount": 0.0})
            totals["ytd_hours"] = round2(totals["ytd_hours"] + hours)
            totals["ytd_amount"] = round2(totals["ytd_amount"] + amount)
    return earnings

def calculate_employee_ytd(
    employee_name: str,
    history: Iterable[Any],
    year: Optional[int] = None,
    employee_id: Optional[str] = None,
) -> YTDState:
    return fold_ytd(employee_history(employee_name, history, year, employee_id))

def calculate_earnings_ytd(
    employee_name: str,
    history: Iterable[Any],
    year: Optional[int] = None,
    employee_id: Optional[str] = None,
) -> Dict[str, Dict[str, float]]:
    """Hours and amounts per earnings code for the year, e.g. ``{"REG": {"ytd_hours": 160.0, "ytd_amount": 4000.0}}``."""
    return fold_earnings_ytd(employee_history(employee_name, history, year, employee_id))

def employee_payroll_summary(
    employee_name: str,
    history: Iterable[Any],
    year: Optional[int] = None,
    employee_id: Optional[str] = None,
) -> Dict[str, Any]:
    entries = employee_history(employee_name, history, year, employee_id)
    return {
        "total_runs": len(entries),
        "payrolls": [e.record for e in entries],
        "date_range": {
            "earliest": entries[0].pay_date,
            "latest": entries[-1].pay_date,
        } if entries else None,
    }
