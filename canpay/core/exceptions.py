"""
Error types raised by the payroll engine.

Invalid input is reported to the caller; degraded history is recovered
locally by the YTD aggregator and never surfaces here.
"""
from typing import Any, Dict, List, Optional


class PayrollError(Exception):
    """Base class for all payroll engine errors."""


class PayrollValidationError(PayrollError, ValueError):
    """Raised when a period config, earnings line or rate table is invalid."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def from_pydantic(cls, label: str, exc) -> "PayrollValidationError":
        """Wrap a pydantic ``ValidationError`` with a one-line summary of every failed field."""
        errors = exc.errors(include_url=False, include_context=False)
        parts = []
        for err in errors:
            loc = ".".join(str(p) for p in err.get("loc", ())) or label
            parts.append(f"{loc}: {err.get('msg')}")
        return cls(f"Invalid {label}: " + "; ".join(parts), errors)


class UnknownFrequencyError(PayrollValidationError):
    """Raised for a pay frequency with no periods-per-year mapping."""

    def __init__(self, frequency: Any):
        super().__init__(
            f"Unknown pay frequency {frequency!r}; expected weekly, biweekly, semimonthly or monthly"
        )
        self.frequency = frequency


class RateTableNotFoundError(PayrollError, KeyError):
    """Raised when no statutory rate table exists for a tax year."""

    def __init__(self, year: Any):
        super().__init__(f"No statutory rate table for tax year {year}")
        self.year = year

    def __str__(self) -> str:
        return self.args[0]
