from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from canpay.core.config import settings
from canpay.core.exceptions import PayrollValidationError, RateTableNotFoundError
from canpay.core.schemas import StatutoryRateTable

# CPP / EI / TD1 values published by CRA for each year.
# WSIB is employer rated; 2.15% is only the default used when none is configured.
_RAW_TABLES: Dict[int, Dict[str, Any]] = {
    2024: {
        "cpp_rate": 5.95,
        "cpp2_rate": 4.00,
        "cpp_basic_exemption": 3500,
        "ympe": 68500,
        "yampe": 73200,
        "ei_rate": 1.66,
        "ei_employer_multiplier": 1.4,
        "ei_max_insurable": 63200,
        "wsib_rate": 2.15,
        "wsib_max_assessable": 100000,
        "federal_bpa": 15705,
        "provincial_bpa": 12399,
        "federal_tax_rate": 15.0,
        "provincial_tax_rate": 5.05,
    },
    2025: {
        "cpp_rate": 5.95,
        "cpp2_rate": 4.00,
        "cpp_basic_exemption": 3500,
        "ympe": 71300,
        "yampe": 81200,
        "ei_rate": 1.64,
        "ei_employer_multiplier": 1.4,
        "ei_max_insurable": 65700,
        "wsib_rate": 2.15,
        "wsib_max_assessable": 100000,
        "federal_bpa": 16129,
        "provincial_bpa": 12747,
        # blended 2025 lowest federal rate (15% until July, 14% after)
        "federal_tax_rate": 14.5,
        "provincial_tax_rate": 5.05,
    },
}

RATE_TABLES: Dict[int, StatutoryRateTable] = {
    year: StatutoryRateTable(year=year, **values) for year, values in _RAW_TABLES.items()
}

def build_rate_table(data: Mapping[str, Any]) -> StatutoryRateTable:
    """Validate a caller-supplied table (e.g. loaded from company settings)."""
    try:
        return StatutoryRateTable.model_validate(dict(data))
    except ValidationError as exc:
        raise PayrollValidationError.from_pydantic("rate table", exc) from exc

def apply_overrides(table: StatutoryRateTable, overrides: Optional[Mapping[str, Any]]) -> StatutoryRateTable:
    """
    Return a copy of ``table`` with ``overrides`` applied and re-validated.

    ``None`` values are ignored so callers can pass a partially filled form.
    Unknown keys are rejected rather than silently dropped.
    """
    if not overrides:
        return table
    changes = {k: v for k, v in overrides.items() if v is not None}
    unknown = sorted(set(changes) - set(StatutoryRateTable.model_fields))
    if unknown:
        raise PayrollValidationError(f"Unknown rate override(s): {', '.join(unknown)}")
    if not changes:
        return table
    return build_rate_table({**table.model_dump(), **changes})

def get_rate_table(year: Optional[int] = None, overrides: Optional[Mapping[str, Any]] = None) -> StatutoryRateTable:
    """Rate table for ``year`` (default ``settings.TAX_YEAR``) with the configured WSIB rate and any overrides."""
    year = year or settings.TAX_YEAR
    if year not in RATE_TABLES:
        raise RateTableNotFoundError(year)
    table = RATE_TABLES[year]
    if settings.WSIB_RATE is not None:
        table = apply_overrides(table, {"wsib_rate": settings.WSIB_RATE})
    return apply_overrides(table, overrides)

def available_years():
    return sorted(RATE_TABLES)
