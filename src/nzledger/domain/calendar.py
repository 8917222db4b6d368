"""Business-day calendar and New Zealand public holidays."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Optional

from dateutil.easter import easter
from dateutil.relativedelta import relativedelta, MO

from nzledger.config import LedgerConfig
from nzledger.domain.clock import ensure_utc
from nzledger.domain.errors import DependencyError
from nzledger.logging_config import get_logger

logger = get_logger("domain.calendar")

HOLIDAY_DATA_UNAVAILABLE = "Holiday data not available"
HOLIDAY_CALCULATION_UNAVAILABLE = "Holiday calculation unavailable"

# Matariki is set by legislation each year rather than by a rule.
MATARIKI_DATES = {
    2022: date(2022, 6, 24),
    2023: date(2023, 7, 14),
    2024: date(2024, 6, 28),
    2025: date(2025, 6, 20),
    2026: date(2026, 7, 10),
    2027: date(2027, 6, 25),
    2028: date(2028, 7, 14),
    2029: date(2029, 7, 6),
    2030: date(2030, 6, 21),
}


@dataclass(frozen=True)
class Holiday:
    date: date
    name: str


class HolidayProvider(ABC):
    """Source of public holidays for a jurisdiction."""

    @abstractmethod
    def holidays_between(self, start: date, end: date, jurisdiction: str) -> list[Holiday]:
        """Return holidays with ``start <= date <= end`` in date order.

        Raises:
            DependencyError: If no data exists for the jurisdiction
        """
        pass


class NZHolidayProvider(HolidayProvider):
    """National New Zealand public holidays, with Mondayisation."""

    JURISDICTIONS = ("nz",)

    def holidays_between(self, start: date, end: date, jurisdiction: str) -> list[Holiday]:
        if jurisdiction.lower() not in self.JURISDICTIONS:
            raise DependencyError(f"{HOLIDAY_DATA_UNAVAILABLE} for jurisdiction '{jurisdiction}'")

        result: list[Holiday] = []
        for year in range(start.year, end.year + 1):
            result.extend(h for h in self.holidays_for_year(year) if start <= h.date <= end)
        return sorted(result, key=lambda h: h.date)

    def holidays_for_year(self, year: int) -> list[Holiday]:
        holidays: list[Holiday] = []

        holidays.extend(
            _mondayise_pair(
                Holiday(date(year, 1, 1), "New Year's Day"),
                Holiday(date(year, 1, 2), "Day after New Year's Day"),
            )
        )
        holidays.append(_mondayise(Holiday(date(year, 2, 6), "Waitangi Day"), year >= 2014))

        easter_sunday = easter(year)
        holidays.append(Holiday(easter_sunday - timedelta(days=2), "Good Friday"))
        holidays.append(Holiday(easter_sunday + timedelta(days=1), "Easter Monday"))

        holidays.append(_mondayise(Holiday(date(year, 4, 25), "ANZAC Day"), year >= 2014))

        sovereign = "King's Birthday" if year >= 2023 else "Queen's Birthday"
        holidays.append(Holiday(date(year, 6, 1) + relativedelta(weekday=MO(+1)), sovereign))

        if year in MATARIKI_DATES:
            holidays.append(Holiday(MATARIKI_DATES[year], "Matariki"))

        holidays.append(Holiday(date(year, 10, 1) + relativedelta(weekday=MO(+4)), "Labour Day"))

        holidays.extend(
            _mondayise_pair(
                Holiday(date(year, 12, 25), "Christmas Day"),
                Holiday(date(year, 12, 26), "Boxing Day"),
            )
        )
        return sorted(holidays, key=lambda h: h.date)


def _next_weekday(day: date) -> date:
    while day.weekday() >= 5:
        day += timedelta(days=1)
    return day


def _mondayise(holiday: Holiday, applies: bool) -> Holiday:
    """Move a weekend holiday to the following Monday."""
    if not applies or holiday.date.weekday() < 5:
        return holiday
    return Holiday(_next_weekday(holiday.date), f"{holiday.name} (observed)")


def _mondayise_pair(first: Holiday, second: Holiday) -> list[Holiday]:
    """Observe two consecutive holidays on distinct weekdays.

    Weekday dates stay put; weekend dates move to the next free weekday,
    in order.
    """
    taken = {h.date for h in (first, second) if h.date.weekday() < 5}
    observed = []
    for holiday in (first, second):
        if holiday.date.weekday() < 5:
            observed.append(holiday)
            continue
        day = _next_weekday(holiday.date)
        while day in taken:
            day = _next_weekday(day + timedelta(days=1))
        taken.add(day)
        observed.append(Holiday(day, f"{holiday.name} (observed)"))
    return observed


class BusinessCalendar:
    """Business hours (Mon-Fri, configured window, no holidays) in local time."""

    def __init__(self, config: LedgerConfig, holiday_provider: Optional[HolidayProvider] = None):
        """Initialize business calendar.

        Args:
            config: Ledger configuration (timezone, hours, jurisdiction)
            holiday_provider: Holiday source; defaults to NZHolidayProvider
        """
        self.config = config
        self.holiday_provider = holiday_provider or NZHolidayProvider()
        self._year_cache: dict[int, frozenset[date]] = {}

    def local_time(self, instant: datetime) -> datetime:
        return ensure_utc(instant).astimezone(self.config.tzinfo)

    def holidays_between(self, start: date, end: date) -> list[Holiday]:
        try:
            return self.holiday_provider.holidays_between(start, end, self.config.jurisdiction)
        except DependencyError:
            raise
        except Exception as exc:
            raise DependencyError(f"Holiday provider failed: {exc}") from exc

    def is_holiday(self, day: date) -> bool:
        if day.year not in self._year_cache:
            holidays = self.holidays_between(date(day.year, 1, 1), date(day.year, 12, 31))
            self._year_cache[day.year] = frozenset(h.date for h in holidays)
        return day in self._year_cache[day.year]

    def is_business_day(self, day: date) -> bool:
        return day.weekday() < 5 and not self.is_holiday(day)

    def is_business_time(self, instant: datetime) -> bool:
        """Whether ``instant`` falls inside business hours.

        Raises:
            DependencyError: If holiday data cannot be obtained
        """
        local = self.local_time(instant)
        if not self.is_business_day(local.date()):
            return False
        return self.config.business_hours_start <= local.time() < self.config.business_hours_end

    def next_business_day(self, day: date) -> date:
        candidate = day + timedelta(days=1)
        while not self.is_business_day(candidate):
            candidate += timedelta(days=1)
        return candidate

    def business_days_until(self, start: date, end: date) -> int:
        """Count business days in ``[start, end)``."""
        count = 0
        day = start
        while day < end:
            if self.is_business_day(day):
                count += 1
            day += timedelta(days=1)
        return count

    def next_holiday(self, from_date: date) -> Optional[Holiday]:
        holidays = self.holidays_between(from_date, from_date + relativedelta(years=1))
        return holidays[0] if holidays else None

    def status(self, now: datetime) -> dict[str, Any]:
        """Read-only calendar status.

        Holiday failures degrade to a sentinel string rather than raising.
        """
        local = self.local_time(now)
        today = local.date()
        status: dict[str, Any] = {
            "current_time": local.strftime("%H:%M %Z"),
            "is_business_time": None,
            "next_business_day": None,
            "next_holiday": None,
            "business_days_until_next_holiday": 0,
        }
        try:
            status["is_business_time"] = self.is_business_time(now)
            status["next_business_day"] = self.next_business_day(today).strftime("%A, %d %B %Y")
            holiday = self.next_holiday(today)
        except DependencyError as exc:
            logger.warning("holiday_data_unavailable", extra={"error": str(exc)})
            status["next_holiday"] = HOLIDAY_CALCULATION_UNAVAILABLE
            return status

        if holiday is None:
            status["next_holiday"] = "No upcoming holidays found"
        else:
            status["next_holiday"] = f"{holiday.name} ({holiday.date.strftime('%d %B %Y')})"
            status["business_days_until_next_holiday"] = self.business_days_until(today, holiday.date)
        return status
