"""
Upload pipeline: spreadsheet bytes -> raw rows -> subscription records -> MetricsResult
"""
import logging
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional

from config import Settings
from models.metrics import MetricsResult
from models.subscription import MonthBucket
from services.metrics import MetricsCalculator
from services.monthly import MonthlyAggregator
from services.normalizer import RowNormalizer
from services.sheet_import import SheetImporter

logger = logging.getLogger(__name__)


class SheetMetricsService:
    """Compute the metrics summary for one uploaded spreadsheet (stateless across uploads)"""

    def __init__(self, settings: Settings, as_of_date: Optional[date] = None):
        self.settings = settings
        self.as_of_date = as_of_date or settings.report_cutoff_date or datetime.utcnow().date()
        self.importer = SheetImporter()
        self.normalizer = RowNormalizer()

    def process_sheet(self, content: bytes, filename: str = "") -> MetricsResult:
        """
        Decode an uploaded file and compute its metrics

        Raises:
            SheetImportError: The file could not be decoded (no partial result)
        """
        rows = self.importer.read_rows(content, filename)
        return self.process_rows(rows)

    def process_rows(self, raw_rows: Iterable[Mapping[Any, Any]]) -> MetricsResult:
        """Compute metrics from rows already decoded into header -> value maps"""
        normalized = self.normalizer.normalize_rows(raw_rows)
        records = normalized.records

        calculator = MetricsCalculator(
            records,
            as_of_date=self.as_of_date,
            active_statuses=self.settings.active_statuses,
            churn_statuses=self.settings.churn_statuses,
        )
        aggregator = MonthlyAggregator(
            records,
            as_of_date=self.as_of_date,
            always_active_statuses=self.settings.always_active_statuses,
            churn_statuses=self.settings.churn_statuses,
            respect_start_date=self.settings.series_respect_start_date,
            churn_denominator=self.settings.churn_denominator,
            first_month=self._month_setting(self.settings.month_range_start),
            last_month=self._month_setting(self.settings.month_range_end),
        )

        summary = calculator.get_metrics_summary()
        logger.info(
            f"Metrics for {len(records)} records as of {self.as_of_date}: "
            f"MRR {summary['mrr']}, churn {summary['churn_rate']}, active {summary['active_users']}"
        )

        return MetricsResult(
            **summary,
            **aggregator.get_monthly_series(),
            rows_processed=len(records),
            row_issues=normalized.issues,
        )

    @staticmethod
    def _month_setting(value: Optional[str]) -> Optional[MonthBucket]:
        return MonthBucket.parse(value) if value else None
