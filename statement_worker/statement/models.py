from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class StatementPeriod:
    """Calendar coverage of a statement, both ends inclusive."""

    start_date: date
    end_date: date

    def to_dict(self) -> dict[str, str]:
        return {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
        }


@dataclass(frozen=True)
class MonthChunk:
    """One calendar month of a statement period.

    The first chunk may start mid-month and the last may end mid-month;
    every other chunk spans a full calendar month.
    """

    start_date: date
    end_date: date
    label: str

    def contains(self, value: date) -> bool:
        return self.start_date <= value <= self.end_date
