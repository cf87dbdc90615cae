"""
Business-day arithmetic and due-date classification.
"""

from datetime import date

import pytest

from docflow.services.deadline_service import (
    DueClass,
    add_business_days,
    classify_due,
    compute_return_window,
    is_business_day,
)


FRIDAY = date(2024, 3, 1)
SATURDAY = date(2024, 3, 2)
MONDAY = date(2024, 3, 4)


class TestAddBusinessDays:

    def test_zero_days_returns_start(self):
        assert add_business_days(SATURDAY, 0) == SATURDAY

    def test_friday_plus_one_is_monday(self):
        assert add_business_days(FRIDAY, 1) == MONDAY

    def test_weekend_start_counts_from_monday(self):
        assert add_business_days(SATURDAY, 1) == MONDAY

    def test_midweek(self):
        assert add_business_days(MONDAY, 3) == date(2024, 3, 7)

    def test_spans_two_weekends(self):
        assert add_business_days(FRIDAY, 10) == date(2024, 3, 15)

    def test_never_lands_on_weekend(self):
        for n in range(1, 15):
            assert is_business_day(add_business_days(FRIDAY, n))

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            add_business_days(FRIDAY, -1)


class TestReturnWindow:

    def test_friday_send_back_deadline_is_next_friday(self):
        window = compute_return_window(FRIDAY)
        assert window.send_back_date == FRIDAY
        assert window.deadline_date == date(2024, 3, 8)
        assert window.deadline_date.weekday() == 4

    def test_wednesday_send_back_skips_weekend(self):
        window = compute_return_window(date(2024, 3, 6))
        assert window.deadline_date == date(2024, 3, 13)

    def test_to_dict_iso(self):
        assert compute_return_window(FRIDAY).to_dict() == {
            "send_back_date": "2024-03-01",
            "deadline_date": "2024-03-08",
        }


class TestClassifyDue:

    @pytest.mark.parametrize(
        "due,expected",
        [
            (date(2024, 3, 4), DueClass.OVERDUE),
            (date(2024, 3, 5), DueClass.TODAY),
            (date(2024, 3, 6), DueClass.SOON),
            (date(2024, 3, 8), DueClass.SOON),
            (date(2024, 3, 9), None),
        ],
    )
    def test_buckets(self, due, expected):
        assert classify_due(due, date(2024, 3, 5)) == expected

    def test_no_due_date(self):
        assert classify_due(None, date(2024, 3, 5)) is None

    def test_custom_horizon(self):
        assert classify_due(date(2024, 3, 12), date(2024, 3, 5), soon_days=7) == DueClass.SOON
