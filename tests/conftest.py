import os
import tempfile

import pytest

# keep test runs from writing log files into the working tree
os.environ.setdefault("LOG_PATH", tempfile.mkdtemp(prefix="canpay-logs-"))

from canpay.tax.rates import get_rate_table  # noqa: E402

@pytest.fixture
def rates_2025():
    return get_rate_table(2025)
