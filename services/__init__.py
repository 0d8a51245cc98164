from .errors import SheetImportError
from .normalizer import RowNormalizer
from .metrics import MetricsCalculator
from .monthly import MonthlyAggregator
from .sheet_import import SheetImporter
from .sheet_metrics import SheetMetricsService

__all__ = [
    "SheetImportError",
    "RowNormalizer",
    "MetricsCalculator",
    "MonthlyAggregator",
    "SheetImporter",
    "SheetMetricsService",
]
