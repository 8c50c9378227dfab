import logging
import math
import os
import sys
from datetime import date, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd

from canpay.core.config import settings
from canpay.core.exceptions import PayrollValidationError, UnknownFrequencyError

PERIODS_PER_YEAR = {
    "weekly": 52,
    "biweekly": 26,
    "semimonthly": 24,
    "monthly": 12,
}

def round2(n: float) -> float:
    """Round to cents, half up, nudged by machine epsilon so 1.005 lands on 1.01."""
    return math.floor((n + sys.float_info.epsilon) * 100 + 0.5) / 100

def periods_per_year(frequency: str) -> int:
    try:
        return PERIODS_PER_YEAR[frequency]
    except (KeyError, TypeError):
        raise UnknownFrequencyError(frequency) from None

def format_currency(amount: float) -> str:
    """Format as Canadian dollars, e.g. ``$1,234.56`` or ``-$12.00``."""
    value = round2(amount)
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"

def parse_date(value: Any) -> Optional[date]:
    """Coerce a date, datetime or date string; None when it cannot be parsed."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, datetime):
        return None if pd.isna(value) else value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    try:
        ts = pd.to_datetime(value, errors="coerce")
    except (TypeError, ValueError, OverflowError):
        return None
    if ts is None or pd.isna(ts):
        return None
    return ts.date()

def format_date(value: Union[str, date, datetime]) -> str:
    parsed = parse_date(value)
    if parsed is None:
        raise PayrollValidationError(f"Cannot format date {value!r}")
    return parsed.strftime("%Y-%m-%d")

def validate_range(value: float, min_value: float, max_value: float, field_name: str) -> None:
    if value < min_value or value > max_value:
        raise PayrollValidationError(f"{field_name} must be between {min_value} and {max_value}")

def parse_numeric_input(value: Any) -> float:
    """Parse user input to a float, returning 0 for blanks and garbage."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return 0.0 if math.isnan(value) else float(value)
    try:
        parsed = float(str(value).strip())
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(parsed) else parsed

def is_valid_positive_number(value: Any) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    return math.isfinite(value) and value >= 0

def calculate_percentage(base: float, rate: float) -> float:
    return round2(base * (rate / 100))

def mkdir_safe(path: str):
    Path(path).mkdir(parents=True, exist_ok=True)

def setup_logging(component: str = "engine", *, log_level: str = None):
    logger_name = f"{settings.APP_NAME}.{component}"
    logger = logging.getLogger(logger_name)
    if logger.handlers:
        return logger
    level = log_level or settings.LOG_LEVEL
    logger.setLevel(getattr(logging, level.upper()))
    log_dir = settings.LOG_PATH
    mkdir_safe(log_dir)
    logfile = Path(log_dir) / f"{component}.log"
    handler = RotatingFileHandler(str(logfile), maxBytes=10_000_000, backupCount=5)
    formatter = logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    if os.getenv("DEV", "").lower() in ("1","true","yes"):
        ch = logging.StreamHandler()
        ch.setFormatter(formatter)
        logger.addHandler(ch)
    logger.propagate = False
    return logger
