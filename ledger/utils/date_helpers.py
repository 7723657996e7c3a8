from dataclasses import dataclass
from datetime import date

from dateutil.relativedelta import relativedelta


@dataclass(frozen=True, order=True)
class MonthKey:
    """A valuation period. Field order gives chronological ordering."""

    year: int
    month: int

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month must be between 1 and 12, got {self.month}")

    @classmethod
    def from_date(cls, dt):
        return cls(dt.year, dt.month)

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    def last_day(self) -> date:
        return self.first_day() + relativedelta(months=1, days=-1)

    def previous(self) -> "MonthKey":
        return MonthKey.from_date(self.first_day() - relativedelta(months=1))

    def next(self) -> "MonthKey":
        return MonthKey.from_date(self.first_day() + relativedelta(months=1))

    def __str__(self):
        return self.label


def month_range(start: MonthKey, end: MonthKey):
    """Yield every month from ``start`` through ``end`` inclusive."""
    current = start
    while current <= end:
        yield current
        current = current.next()
