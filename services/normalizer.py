"""
Row normalization for uploaded subscription spreadsheets

Turns decoded rows (original header -> raw cell) into SubscriptionRecords:
headers are canonicalized to accent-free camelCase, date columns are parsed
and numeric columns coerced. A bad cell never fails its row, it is degraded
to absent and reported as a RowIssue.
"""
import logging
import math
import re
import unicodedata
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from dateutil import parser

from models.metrics import NormalizationResult, RowIssue
from models.subscription import SubscriptionRecord

logger = logging.getLogger(__name__)

# Spreadsheet serial dates count days from this reference
SERIAL_DATE_REFERENCE = date(1900, 1, 1)

# Year-first strings are ISO and must not be read day first
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}")

# Canonical header -> SubscriptionRecord field
FIELD_ALIASES = {
    "status": "status",
    "valor": "value",
    "value": "value",
    "dataInicio": "start_date",
    "startDate": "start_date",
    "dataCancelamento": "cancel_date",
    "cancelDate": "cancel_date",
    "dataStatus": "status_date",
    "statusDate": "status_date",
    "quantidadeCobrancas": "billing_count",
    "billingCount": "billing_count",
}

DATE_FIELDS = {"start_date", "cancel_date", "status_date"}


@lru_cache(maxsize=1024)
def normalize_key(key: str) -> str:
    """
    Canonicalize a spreadsheet header

    Accents are stripped and the words joined in camelCase:
    "Data Início" -> "dataInicio", "Valor" -> "valor". Words that are
    already camelCase keep their inner capitals, so canonical keys map
    to themselves.
    """
    decomposed = unicodedata.normalize("NFD", str(key))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))

    words = []
    for index, word in enumerate(stripped.split()):
        if word.islower() or word.isupper() or not any(ch.isalpha() for ch in word):
            word = word.lower()
        if index == 0:
            word = word[:1].lower() + word[1:]
        else:
            word = word[:1].upper() + word[1:]
        words.append(word)

    return "".join(words)


def is_date_key(canonical_key: str) -> bool:
    lowered = canonical_key.lower()
    return "data" in lowered or "date" in lowered


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def parse_date(value: Any) -> Tuple[Optional[date], Optional[str]]:
    """
    Parse a date cell

    Returns (date, None) on success, (None, None) for an empty cell and
    (None, reason) when the cell holds something that is not a date.
    Strings such as "30/09/2023 14:05" are read day first.
    """
    if _is_blank(value):
        return None, None

    if isinstance(value, datetime):
        return value.date(), None
    if isinstance(value, date):
        return value, None
    if isinstance(value, bool):
        return None, "not a date"

    if isinstance(value, (int, float)):
        return _parse_serial_date(value)

    text = str(value).strip()

    try:
        serial = float(text)
    except ValueError:
        pass
    else:
        return _parse_serial_date(serial)

    try:
        if ISO_DATE_PATTERN.match(text):
            return parser.isoparse(text).date(), None
        return parser.parse(text, dayfirst=True).date(), None
    except (ValueError, OverflowError) as e:
        return None, f"unrecognized date '{text}' ({e})"


def _parse_serial_date(serial: float) -> Tuple[Optional[date], Optional[str]]:
    if math.isnan(serial) or math.isinf(serial) or serial < 0:
        return None, f"invalid serial date {serial}"
    try:
        return SERIAL_DATE_REFERENCE + timedelta(days=int(serial)), None
    except OverflowError:
        return None, f"serial date {serial} out of range"


def parse_decimal(value: Any) -> Tuple[Optional[float], Optional[str]]:
    """
    Parse a non-negative amount without assuming a locale

    "1.234,56", "1,234.56", "R$ 100,00" and 100.5 all parse. The last
    separator is the decimal point when both "," and "." appear; a lone
    "," is a decimal comma.
    """
    if _is_blank(value):
        return None, None
    if isinstance(value, bool):
        return None, "not a number"

    if isinstance(value, (int, float)):
        number = Decimal(repr(value)) if isinstance(value, float) else Decimal(value)
    else:
        text = str(value).strip()
        # Drop currency symbols/codes around the number and grouping spaces
        text = re.sub(r"^[^\d+\-.,]+|[^\d.,]+$", "", text)
        text = re.sub(r"[\s']", "", text)

        if "," in text and "." in text:
            if text.rfind(",") > text.rfind("."):
                text = text.replace(".", "").replace(",", ".")
            else:
                text = text.replace(",", "")
        elif "," in text:
            text = text.replace(",", ".") if text.count(",") == 1 else text.replace(",", "")
        elif text.count(".") > 1:
            text = text.replace(".", "")

        try:
            number = Decimal(text)
        except InvalidOperation:
            return None, f"not a number '{value}'"

    if not number.is_finite():
        return None, f"not a finite number '{value}'"
    if number < 0:
        return None, f"negative amount '{value}'"

    amount = float(number)
    if not math.isfinite(amount):
        return None, f"amount out of range '{value}'"

    return amount, None


class RowNormalizer:
    """Normalize decoded spreadsheet rows into subscription records"""

    @staticmethod
    def canonicalize_row(raw_row: Mapping[Any, Any]) -> Dict[str, Any]:
        """Rename every header to its canonical form, leaving cell values untouched"""
        return {normalize_key(key): value for key, value in raw_row.items()}

    def normalize_row(
        self, raw_row: Mapping[Any, Any], row_number: int = 0
    ) -> Tuple[SubscriptionRecord, List[RowIssue]]:
        """
        Normalize a single row

        Args:
            raw_row: Original header -> raw cell value
            row_number: 1-based row number used in issue reports

        Returns:
            Tuple of (record, issues found while reading the row)
        """
        fields: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        issues: List[RowIssue] = []

        def report(field: str, raw: Any, reason: str) -> None:
            logger.debug(f"Row {row_number}: {field} degraded to absent ({reason})")
            issues.append(RowIssue(row=row_number, field=field, value=str(raw), reason=reason))

        for key, raw in self.canonicalize_row(raw_row).items():
            target = FIELD_ALIASES.get(key)

            if target == "status":
                fields["status"] = "" if _is_blank(raw) else str(raw).strip()

            elif target in DATE_FIELDS or (target is None and is_date_key(key)):
                parsed, reason = parse_date(raw)
                if reason:
                    report(key, raw, reason)
                if target:
                    fields[target] = parsed
                else:
                    extra[key] = parsed

            elif target == "value":
                amount, reason = parse_decimal(raw)
                if reason:
                    report(key, raw, reason)
                fields["value"] = amount

            elif target == "billing_count":
                count, reason = parse_decimal(raw)
                if reason:
                    report(key, raw, reason)
                fields["billing_count"] = int(count) if count is not None else None

            else:
                extra[key] = None if _is_blank(raw) else raw

        return SubscriptionRecord(extra=extra, **fields), issues

    def normalize_rows(self, raw_rows: Iterable[Mapping[Any, Any]]) -> NormalizationResult:
        """Normalize every row; never raises on a single row's bad data"""
        result = NormalizationResult()

        for row_number, raw_row in enumerate(raw_rows, start=1):
            record, issues = self.normalize_row(raw_row, row_number)
            result.records.append(record)
            result.issues.extend(issues)

        if result.issues:
            logger.info(
                f"Normalized {len(result.records)} rows, "
                f"{len(result.issues)} fields degraded to absent"
            )
        else:
            logger.info(f"Normalized {len(result.records)} rows")

        return result
