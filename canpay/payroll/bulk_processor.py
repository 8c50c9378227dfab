"""
Bulk payroll processing for a batch of employees sharing a pay run.
"""
import pandas as pd
from typing import Dict, List, Any, Optional, Union

from ..core.exceptions import PayrollError
from ..core.schemas import PayrollRecord, StatutoryRateTable
from ..core.utils import parse_date, round2, setup_logging
from .engine import PayrollEngine

OVERTIME_MULTIPLIER = 1.5

TEMPLATE_COLUMNS = [
    'employee_name', 'employee_id', 'pay_date', 'frequency', 'pay_type',
    'hourly_rate', 'regular_hours', 'overtime_hours', 'salary', 'bonus',
    'vacation_mode', 'vacation_rate', 'vacation_amount',
    'federal_bpa', 'provincial_bpa',
]

AMOUNT_COLUMNS = ['hourly_rate', 'regular_hours', 'overtime_hours', 'salary', 'bonus', 'vacation_amount']
OPTIONAL_NUMERIC_COLUMNS = ['vacation_rate', 'federal_bpa', 'provincial_bpa']
CONFIG_FIELDS = [
    'employee_name', 'employee_id', 'pay_date', 'frequency', 'pay_type',
    'vacation_mode', 'vacation_rate', 'vacation_amount', 'federal_bpa', 'provincial_bpa',
]

def _clean_employee_id(value: Any) -> Optional[str]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    # ids read from a numeric column with blanks arrive as floats
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip() or None

class PayrollBulkProcessor:
    """Runs the payroll engine over a batch of rows and summarizes the run."""

    def __init__(self, rate_table: Union[StatutoryRateTable, Dict[str, Any], None] = None, engine: Optional[PayrollEngine] = None):
        self.logger = setup_logging("bulk")
        self.engine = engine or PayrollEngine(rate_table=rate_table)

    def get_template(self) -> pd.DataFrame:
        """Empty upload template with every recognised column."""
        return pd.DataFrame(columns=TEMPLATE_COLUMNS)

    def normalize_batch(self, batch: Union[pd.DataFrame, List[Dict[str, Any]]]) -> pd.DataFrame:
        """Trim names, coerce numeric columns and parse pay dates."""
        df = batch.copy() if isinstance(batch, pd.DataFrame) else pd.DataFrame(list(batch or []))
        for column in TEMPLATE_COLUMNS:
            if column not in df.columns:
                df[column] = None
        if df.empty:
            return df

        df['employee_name'] = df['employee_name'].fillna('').astype(str).str.strip()
        df['employee_id'] = df['employee_id'].map(_clean_employee_id)

        for field in AMOUNT_COLUMNS:
            df[field] = pd.to_numeric(df[field], errors='coerce').fillna(0).clip(lower=0)
        for field in OPTIONAL_NUMERIC_COLUMNS:
            df[field] = pd.to_numeric(df[field], errors='coerce')

        df['pay_date'] = df['pay_date'].map(parse_date)
        for field in ('frequency', 'pay_type', 'vacation_mode'):
            df[field] = df[field].map(lambda v: str(v).strip().lower() if pd.notna(v) and str(v).strip() else None)

        # salary rows with no hourly rate are salaried unless told otherwise
        salaried = df['pay_type'].isna() & (df['salary'] > 0) & (df['hourly_rate'] == 0)
        df.loc[salaried, 'pay_type'] = 'salary'
        return df

    def build_earnings_lines(self, row: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Earnings lines for a row: an explicit ``earnings_lines`` list wins over the hour and salary columns."""
        explicit = row.get('earnings_lines')
        if isinstance(explicit, (list, tuple)) and explicit:
            return list(explicit)

        lines = []
        if row.get('pay_type') == 'salary':
            if row['salary'] > 0:
                lines.append({'code': 'REG', 'description': 'Salary', 'amount': round2(row['salary'])})
        else:
            rate = row['hourly_rate']
            if row['regular_hours'] > 0:
                lines.append({'code': 'REG', 'description': 'Regular Hours', 'rate': rate, 'hours': row['regular_hours']})
            if row['overtime_hours'] > 0:
                lines.append({
                    'code': 'OT',
                    'description': 'Overtime Hours',
                    'rate': rate * OVERTIME_MULTIPLIER,
                    'hours': row['overtime_hours'],
                })
        if row['bonus'] > 0:
            lines.append({'code': 'BONUS', 'description': 'Bonus', 'amount': round2(row['bonus'])})
        return lines

    def _period_config(self, row: Dict[str, Any]) -> Dict[str, Any]:
        config = {}
        for field in CONFIG_FIELDS:
            value = row.get(field)
            if value is None or (isinstance(value, float) and pd.isna(value)):
                continue
            config[field] = value
        return config

    def process(
        self,
        batch: Union[pd.DataFrame, List[Dict[str, Any]]],
        history: Optional[List[Any]] = None,
    ) -> Dict[str, Any]:
        """
        Calculate every row of a batch.

        Rows are processed in pay-date order against a working copy of
        ``history``, so two periods for one employee in the same batch
        chain their YTD. A row that fails validation is reported in
        ``errors`` with its 1-based row number and the rest still run.
        """
        df = self.normalize_batch(batch)
        if df.empty:
            return {'success': True, 'results': [], 'errors': [], 'summary': self._generate_payroll_summary([])}

        df['row_number'] = range(1, len(df) + 1)
        df['_sort_date'] = pd.to_datetime(df['pay_date'], errors='coerce')
        df = df.sort_values(['_sort_date', 'row_number'], na_position='first', kind='stable')

        working = list(history or [])
        results = []
        errors = []

        for row in df.drop(columns=['_sort_date']).to_dict('records'):
            try:
                result = self.engine.calculate(
                    self._period_config(row),
                    self.build_earnings_lines(row),
                    history=working,
                )
            except PayrollError as e:
                errors.append({
                    'row': row['row_number'],
                    'employee_name': row.get('employee_name') or None,
                    'error': str(e),
                })
                self.logger.warning("Bulk row %s rejected: %s", row['row_number'], e)
                continue
            working.append(PayrollRecord.from_result(result))
            results.append(result)

        summary = self._generate_payroll_summary(results)
        self.logger.info(
            "Bulk payroll processed %d rows: %d calculated, %d rejected",
            len(df), len(results), len(errors),
        )
        return {
            'success': not errors,
            'results': results,
            'errors': errors,
            'summary': summary,
        }

    def _generate_payroll_summary(self, results: List[Any]) -> Dict[str, Any]:
        """Run totals, averages and one line per calculated period."""
        if not results:
            return {'total_employees': 0, 'total_periods': 0, 'totals': {}, 'averages': {}, 'employee_details': []}

        employee_details = []
        for result in results:
            employee_details.append({
                'employee_name': result.employee_name,
                'employee_id': result.employee_id,
                'pay_date': result.pay_date.isoformat(),
                'gross': result.gross,
                'cpp': round2(result.cpp1_employee + result.cpp2_employee),
                'ei': result.ei_employee,
                'income_tax': result.income_tax,
                'wsib': result.wsib_premium,
                'net': result.net,
            })

        details = pd.DataFrame(employee_details)
        totals = {
            col: round2(float(details[col].sum()))
            for col in ('gross', 'cpp', 'ei', 'income_tax', 'wsib', 'net')
        }
        totals['deductions'] = round2(totals['cpp'] + totals['ei'] + totals['income_tax'])
        periods = len(results)

        return {
            'total_employees': int(details['employee_name'].nunique()),
            'total_periods': periods,
            'totals': totals,
            'averages': {
                'gross': round2(totals['gross'] / periods),
                'net': round2(totals['net'] / periods),
            },
            'employee_details': employee_details,
        }
