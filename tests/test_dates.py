from datetime import date

from expenses_api.services.dates import (
    Bucket,
    bucket,
    days_in_month,
    month_key,
    period_label,
)


def test_bucket_uses_iso_week_and_calendar_month_year():
    assert bucket(date(2025, 3, 14)) == Bucket(week=11, month=3, year=2025)


def test_bucket_keeps_calendar_year_when_iso_week_belongs_to_previous_year():
    # 2021-01-01 falls in ISO week 53 of 2020
    assert bucket(date(2021, 1, 1)) == Bucket(week=53, month=1, year=2021)


def test_bucket_late_december_in_first_iso_week():
    assert bucket(date(2024, 12, 30)) == Bucket(week=1, month=12, year=2024)


def test_days_in_month_handles_leap_years():
    assert days_in_month(2, 2024) == 29
    assert days_in_month(2, 2023) == 28
    assert days_in_month(2, 1900) == 28
    assert days_in_month(2, 2000) == 29
    assert days_in_month(4, 2025) == 30
    assert days_in_month(12, 2025) == 31


def test_month_key_is_zero_padded():
    assert month_key(3, 2025) == "03-2025"
    assert month_key(11, 2024) == "11-2024"


def test_period_labels():
    assert period_label("month", 1, 2025) == "January 2025"
    assert period_label("year", 2024) == "2024"
