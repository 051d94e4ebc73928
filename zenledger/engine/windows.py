"""
Aggregation Windows

A window is either one calendar month of one year, or one calendar year.
Boundaries follow the local calendar (a month is January 1st-31st, not a
30-day span), so every timestamp is first converted to a local date.
"""

import calendar
from datetime import date, datetime, tzinfo
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


def local_date(ts: datetime, tz: Optional[tzinfo] = None) -> date:
    """
    The calendar day a timestamp falls on.

    Aware timestamps are converted to `tz` (system local when None).
    Naive timestamps are already local wall-clock time.
    """
    if ts.tzinfo is None:
        return ts.date()
    return ts.astimezone(tz).date()


class WindowKind(str, Enum):
    MONTH = "month"
    YEAR = "year"


class Window(BaseModel):
    """A month-in-year or a whole year."""
    model_config = ConfigDict(frozen=True)

    kind: WindowKind
    year: int = Field(ge=1, le=9999)
    month: Optional[int] = Field(default=None, ge=1, le=12)

    @model_validator(mode='after')
    def month_matches_kind(self) -> 'Window':
        if self.kind == WindowKind.MONTH and self.month is None:
            raise ValueError("A month window needs a month")
        if self.kind == WindowKind.YEAR and self.month is not None:
            raise ValueError("A year window cannot have a month")
        return self

    @classmethod
    def for_month(cls, year: int, month: int) -> 'Window':
        return cls(kind=WindowKind.MONTH, year=year, month=month)

    @classmethod
    def for_year(cls, year: int) -> 'Window':
        return cls(kind=WindowKind.YEAR, year=year)

    @classmethod
    def current_month(
        cls,
        now: Optional[datetime] = None,
        tz: Optional[tzinfo] = None,
    ) -> 'Window':
        today = local_date(now, tz) if now else date.today()
        return cls.for_month(today.year, today.month)

    @property
    def is_month(self) -> bool:
        return self.kind == WindowKind.MONTH

    @property
    def label(self) -> str:
        if self.is_month:
            return f"{self.year:04d}-{self.month:02d}"
        return f"{self.year:04d}"

    @property
    def days_in_month(self) -> int:
        if not self.is_month:
            raise ValueError("Only month windows have a day count")
        return calendar.monthrange(self.year, self.month)[1]

    def contains_date(self, day: date) -> bool:
        if day.year != self.year:
            return False
        return not self.is_month or day.month == self.month

    def contains(self, ts: datetime, tz: Optional[tzinfo] = None) -> bool:
        """Does the timestamp fall inside this window on the local calendar?"""
        return self.contains_date(local_date(ts, tz))

    def previous(self) -> 'Window':
        """The window immediately before this one, for period comparisons."""
        if not self.is_month:
            return Window.for_year(self.year - 1)
        if self.month == 1:
            return Window.for_month(self.year - 1, 12)
        return Window.for_month(self.year, self.month - 1)
