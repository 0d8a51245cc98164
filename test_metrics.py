"""
Unit tests for the point-in-time metrics (MRR, churn, LTV, subscription length).
"""
from datetime import date

import pytest

from services.formatting import format_amount, format_days, format_percentage
from services.metrics import MetricsCalculator


def test_basic_scenario(make_record, as_of):
    records = [make_record("Ativa", 100), make_record("Cancelada", 50)]

    summary = MetricsCalculator(records, as_of_date=as_of).get_metrics_summary()

    assert summary["mrr"] == "100.00"
    assert summary["churn_rate"] == "50.00%"
    assert summary["active_users"] == 1
    # ARPU 100 / churn 0.5
    assert summary["ltv"] == "200.00"


def test_empty_dataset(as_of):
    calculator = MetricsCalculator([], as_of_date=as_of)

    assert calculator.calculate_churn_rate() == 0
    assert calculator.calculate_ltv() == 0

    summary = calculator.get_metrics_summary()
    assert summary["mrr"] == "0.00"
    assert summary["churn_rate"] == "0.00%"
    assert summary["ltv"] == "0.00"
    assert summary["average_subscription_length"] == "0 days"
    assert summary["active_users"] == 0


def test_active_users_never_exceed_dataset(sample_records, as_of):
    calculator = MetricsCalculator(sample_records, as_of_date=as_of)
    assert calculator.count_active_users() == 1
    assert calculator.count_active_users() <= len(sample_records)


def test_mrr_skips_missing_values_but_keeps_zero(make_record, as_of):
    records = [
        make_record("Ativa", 0),
        make_record("Ativa", None),
        make_record("Ativa", 25.5),
        make_record("Upgrade", 1000),
    ]
    calculator = MetricsCalculator(records, as_of_date=as_of)

    assert calculator.calculate_mrr() == pytest.approx(25.5)
    assert calculator.count_active_users() == 3


def test_churn_rate_uses_full_dataset(make_record, as_of):
    records = [
        make_record("Ativa"),
        make_record("Cancelada"),
        make_record("Upgrade"),
        make_record("Trial cancelado"),
    ]

    assert MetricsCalculator(records, as_of_date=as_of).calculate_churn_rate() == 0.25

    widened = MetricsCalculator(
        records, as_of_date=as_of, churn_statuses=["Cancelada", "Trial cancelado"]
    )
    assert widened.calculate_churn_rate() == 0.5


def test_ltv_is_zero_without_churn(make_record, as_of):
    records = [make_record("Ativa", 100), make_record("Ativa", 200)]
    calculator = MetricsCalculator(records, as_of_date=as_of)

    assert calculator.calculate_churn_rate() == 0
    assert calculator.calculate_ltv() == 0


def test_ltv_without_active_users(make_record, as_of):
    calculator = MetricsCalculator([make_record("Cancelada", 80)], as_of_date=as_of)
    assert calculator.calculate_ltv() == 0


def test_average_length_one_year(make_record):
    now = date(2023, 10, 19)
    records = [make_record("Ativa", 10, start=date(2022, 10, 19))]

    calculator = MetricsCalculator(records, as_of_date=now)

    assert calculator.calculate_average_subscription_days() == 365
    assert calculator.calculate_average_subscription_length() == "365 days"


def test_average_length_uses_cancel_date(make_record, as_of):
    records = [make_record("Ativa", start=date(2023, 1, 1), cancel=date(2023, 1, 31))]
    assert MetricsCalculator(records, as_of_date=as_of).calculate_average_subscription_days() == 30


def test_average_length_counts_inverted_dates(make_record, as_of):
    records = [
        make_record("Ativa", start=date(2023, 5, 1), cancel=date(2023, 5, 11)),
        make_record("Ativa", start=date(2023, 6, 1), cancel=date(2023, 5, 1)),
        make_record("Ativa"),
        make_record("Cancelada", start=date(2020, 1, 1)),
    ]

    calculator = MetricsCalculator(records, as_of_date=as_of)

    assert calculator.calculate_average_subscription_days() == 5
    assert calculator.calculate_average_subscription_length() == "5 days"


class TestFormatting:
    """Fixed two-decimal rendering."""

    def test_amount(self):
        assert format_amount(100) == "100.00"
        assert format_amount(1.005) == "1.01"
        assert format_amount(0) == "0.00"

    def test_percentage(self):
        assert format_percentage(0.1234) == "12.34%"
        assert format_percentage(0.5) == "50.00%"
        assert format_percentage(1 / 3) == "33.33%"

    def test_days(self):
        assert format_days(364.5) == "365 days"
        assert format_days(0) == "0 days"
