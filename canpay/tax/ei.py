from typing import Dict

from canpay.core.schemas import EIResult, StatutoryRateTable
from canpay.core.utils import round2

def compute_ei(
    current_insurable: float,
    ytd_insurable: float,
    ytd_ei: float,
    ei_rate: float,
    employer_multiplier: float = 1.4,
    max_insurable: float = 65700.0,
) -> EIResult:
    """
    Calculate EI premiums for one pay period.

    Insurable earnings are capped at whatever room is left under the maximum
    insurable earnings. The employer premium is the rounded employee premium
    times the multiplier, rounded again.
    """
    rate = ei_rate / 100
    insurable = 0.0
    employee = 0.0

    if ytd_insurable < max_insurable:
        insurable = max(0.0, min(current_insurable, max_insurable - ytd_insurable))
        if insurable > 0:
            employee = round2(insurable * rate)

    employer = round2(employee * employer_multiplier)

    return EIResult(
        ei_employee=employee,
        ei_employer=employer,
        insurable_this=round2(insurable),
        new_ytd_ei=round2(ytd_ei + employee),
    )

def max_ei_contributions(table: StatutoryRateTable) -> Dict[str, float]:
    employee = round2(table.ei_max_insurable * table.ei_rate / 100)
    return {"employee": employee, "employer": round2(employee * table.ei_employer_multiplier)}

def has_reached_ei_max(ytd_ei: float, table: StatutoryRateTable) -> bool:
    return ytd_ei >= max_ei_contributions(table)["employee"]

def remaining_ei_room(ytd_ei: float, table: StatutoryRateTable) -> float:
    return round2(max(0.0, max_ei_contributions(table)["employee"] - ytd_ei))
