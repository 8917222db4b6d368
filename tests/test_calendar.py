"""Tests for the business calendar and NZ holidays."""

from datetime import UTC, date, datetime

import pytest

from nzledger.config import LedgerConfig
from nzledger.domain.calendar import (
    HOLIDAY_CALCULATION_UNAVAILABLE,
    BusinessCalendar,
    HolidayProvider,
    NZHolidayProvider,
)
from nzledger.domain.errors import DependencyError


class BrokenHolidayProvider(HolidayProvider):
    def holidays_between(self, start, end, jurisdiction):
        raise RuntimeError("holiday feed offline")


@pytest.fixture
def calendar(config):
    return BusinessCalendar(config)


class TestNZHolidayProvider:
    """Tests for national holiday rules."""

    def test_holidays_2024(self):
        holidays = {h.date: h.name for h in NZHolidayProvider().holidays_for_year(2024)}
        assert holidays[date(2024, 1, 1)] == "New Year's Day"
        assert holidays[date(2024, 1, 2)] == "Day after New Year's Day"
        assert holidays[date(2024, 2, 6)] == "Waitangi Day"
        assert holidays[date(2024, 3, 29)] == "Good Friday"
        assert holidays[date(2024, 4, 1)] == "Easter Monday"
        assert holidays[date(2024, 4, 25)] == "ANZAC Day"
        assert holidays[date(2024, 6, 3)] == "King's Birthday"
        assert holidays[date(2024, 6, 28)] == "Matariki"
        assert holidays[date(2024, 10, 28)] == "Labour Day"
        assert holidays[date(2024, 12, 25)] == "Christmas Day"
        assert holidays[date(2024, 12, 26)] == "Boxing Day"

    def test_weekend_christmas_is_observed_after_boxing_day(self):
        # Christmas 2022 fell on a Sunday, Boxing Day on the Monday
        holidays = {h.date: h.name for h in NZHolidayProvider().holidays_for_year(2022)}
        assert holidays[date(2022, 12, 26)] == "Boxing Day"
        assert holidays[date(2022, 12, 27)] == "Christmas Day (observed)"

    def test_weekend_waitangi_day_is_mondayised(self):
        # 6 February 2021 was a Saturday
        holidays = {h.date: h.name for h in NZHolidayProvider().holidays_for_year(2021)}
        assert holidays[date(2021, 2, 8)] == "Waitangi Day (observed)"

    def test_holidays_between_is_inclusive_and_sorted(self):
        holidays = NZHolidayProvider().holidays_between(date(2023, 12, 25), date(2024, 1, 2), "nz")
        assert [h.date for h in holidays] == [
            date(2023, 12, 25),
            date(2023, 12, 26),
            date(2024, 1, 1),
            date(2024, 1, 2),
        ]

    def test_unknown_jurisdiction(self):
        with pytest.raises(DependencyError, match="Holiday data not available"):
            NZHolidayProvider().holidays_between(date(2024, 1, 1), date(2024, 12, 31), "au")


class TestBusinessCalendar:
    """Tests for business hours in Auckland local time."""

    def test_business_time_uses_local_time(self, calendar):
        # 22:00 UTC Monday is 11:00 Tuesday in Auckland
        assert calendar.is_business_time(datetime(2024, 1, 15, 22, 0, tzinfo=UTC))
        # 07:00 UTC Tuesday is 20:00 Tuesday in Auckland
        assert not calendar.is_business_time(datetime(2024, 1, 16, 7, 0, tzinfo=UTC))

    def test_business_hours_window_is_half_open(self, calendar):
        # 09:00 and 17:00 NZDT on Wednesday 17 January 2024
        assert calendar.is_business_time(datetime(2024, 1, 16, 20, 0, tzinfo=UTC))
        assert not calendar.is_business_time(datetime(2024, 1, 17, 4, 0, tzinfo=UTC))

    def test_weekend_is_not_business_time(self, calendar):
        # Saturday 20 January 2024, 11:00 NZDT
        assert not calendar.is_business_time(datetime(2024, 1, 19, 22, 0, tzinfo=UTC))

    def test_holiday_is_not_business_time(self, calendar):
        # Waitangi Day 2024, 11:00 NZDT
        assert not calendar.is_business_time(datetime(2024, 2, 5, 22, 0, tzinfo=UTC))

    def test_naive_instants_are_utc(self, calendar):
        assert calendar.is_business_time(datetime(2024, 1, 15, 22, 0))

    def test_next_business_day_skips_weekend_and_holidays(self, calendar):
        assert calendar.next_business_day(date(2024, 1, 19)) == date(2024, 1, 22)
        assert calendar.next_business_day(date(2024, 2, 5)) == date(2024, 2, 7)
        assert calendar.next_business_day(date(2023, 12, 22)) == date(2023, 12, 27)

    def test_business_days_until(self, calendar):
        # Mon 22 Jan to Tue 6 Feb: 11 weekdays
        assert calendar.business_days_until(date(2024, 1, 22), date(2024, 2, 6)) == 11

    def test_holiday_provider_failure_is_a_dependency_error(self, config):
        calendar = BusinessCalendar(config, holiday_provider=BrokenHolidayProvider())
        with pytest.raises(DependencyError, match="holiday feed offline"):
            calendar.is_business_time(datetime(2024, 1, 15, 22, 0, tzinfo=UTC))

    def test_status(self, calendar):
        status = calendar.status(datetime(2024, 1, 15, 22, 0, tzinfo=UTC))
        assert status["current_time"] == "11:00 NZDT"
        assert status["is_business_time"] is True
        assert status["next_business_day"] == "Wednesday, 17 January 2024"
        assert status["next_holiday"] == "Waitangi Day (06 February 2024)"
        # Tue 16 Jan to Mon 5 Feb inclusive
        assert status["business_days_until_next_holiday"] == 15

    def test_status_degrades_when_holidays_unavailable(self):
        calendar = BusinessCalendar(LedgerConfig(jurisdiction="tk"))
        status = calendar.status(datetime(2024, 1, 15, 22, 0, tzinfo=UTC))
        assert status["next_holiday"] == HOLIDAY_CALCULATION_UNAVAILABLE
        assert status["is_business_time"] is None
        assert status["business_days_until_next_holiday"] == 0
