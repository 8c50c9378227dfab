"""
Canada Pension Plan contributions.

Tier 1 (base CPP) covers pensionable earnings up to the YMPE, less the basic
exemption prorated per pay period. Tier 2 (CPP2) covers earnings between the
YMPE and the YAMPE with no exemption. Each tier is rounded to the cent on its
own; the employer matches the employee in both tiers.
"""
from typing import Dict

from canpay.core.schemas import CPPResult, StatutoryRateTable
from canpay.core.utils import periods_per_year, round2

def compute_cpp(
    current_pensionable: float,
    ytd_pensionable: float,
    ytd_cpp1: float,
    ytd_cpp2: float,
    cpp_rate: float,
    cpp2_rate: float,
    per_period_exemption: float,
    ympe: float,
    yampe: float,
) -> CPPResult:
    """
    Calculate CPP contributions for one pay period.

    Args:
        current_pensionable: Pensionable earnings for this period
        ytd_pensionable: Pensionable earnings earlier in the year
        ytd_cpp1: Tier 1 contributions earlier in the year
        ytd_cpp2: Tier 2 contributions earlier in the year
        cpp_rate: Tier 1 rate in percent (5.95 for 2025)
        cpp2_rate: Tier 2 rate in percent (4.00 for 2025)
        per_period_exemption: Annual basic exemption divided by periods per year
        ympe: Year's maximum pensionable earnings (tier 1 ceiling)
        yampe: Year's additional maximum pensionable earnings (tier 2 ceiling)
    """
    rate1 = cpp_rate / 100
    rate2 = cpp2_rate / 100
    current = max(0.0, current_pensionable)

    pensionable1 = 0.0
    pensionable2 = 0.0
    cpp1 = 0.0
    cpp2 = 0.0

    # Tier 1: up to YMPE, exemption applies here only
    if ytd_pensionable < ympe:
        pensionable1 = min(current, ympe - ytd_pensionable)
        if pensionable1 > per_period_exemption:
            cpp1 = round2((pensionable1 - per_period_exemption) * rate1)

    # Tier 2: whatever this period earned beyond a full tier 1, up to YAMPE
    after_tier1 = ytd_pensionable + pensionable1
    remaining = current - pensionable1
    if yampe > ympe and after_tier1 >= ympe and remaining > 0:
        pensionable2 = max(0.0, min(remaining, yampe - after_tier1))
        if pensionable2 > 0:
            cpp2 = round2(pensionable2 * rate2)

    return CPPResult(
        cpp1_employee=cpp1,
        cpp1_employer=cpp1,
        cpp2_employee=cpp2,
        cpp2_employer=cpp2,
        pensionable_tier1_this=round2(pensionable1),
        pensionable_tier2_this=round2(pensionable2),
        new_ytd_cpp1=round2(ytd_cpp1 + cpp1),
        new_ytd_cpp2=round2(ytd_cpp2 + cpp2),
    )

def cpp_exemption_per_period(frequency: str, annual_exemption: float = 3500.0) -> float:
    return round2(annual_exemption / periods_per_year(frequency))

def max_cpp_contributions(table: StatutoryRateTable) -> Dict[str, float]:
    """Annual employee maximums for both tiers."""
    tier1 = (table.ympe - table.cpp_basic_exemption) * table.cpp_rate / 100
    tier2 = max(0.0, table.yampe - table.ympe) * table.cpp2_rate / 100
    return {"tier1": round2(tier1), "tier2": round2(tier2), "total": round2(tier1 + tier2)}
