"""
Contribution graph coordinate mapping.

Responsibilities:
- Map (week offset, day of week) graph positions to commit timestamps
- Hold the built-in pixel patterns
- Expand a pattern into an ordered list of timestamps

This module does NOT:
- call git
- write the marker file
- sleep or schedule anything
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

DAYS_PER_WEEK = 7

# Every graph position resolves to this local time, so a date maps to a
# single timestamp for the whole day.
ANCHOR_TIME = time(12, 0)


class PatternNotFoundError(LookupError):
    """Requested pattern name is not defined."""

    def __init__(self, name: str, available: Sequence[str]):
        self.name = name
        self.available = list(available)
        super().__init__(
            f"Pattern {name!r} not found. Available patterns: {', '.join(self.available)}"
        )


@dataclass(frozen=True)
class PatternGrid:
    """
    A 7 x W boolean matrix.

    Row index is the day offset within a week, counted from the mapper's
    origin date (so row 0 falls on whatever weekday the origin does).
    Column index is the week offset relative to the pattern start.
    """

    name: str
    rows: tuple[tuple[bool, ...], ...]

    def __post_init__(self) -> None:
        if len(self.rows) != DAYS_PER_WEEK:
            raise ValueError(
                f"Pattern {self.name!r} needs {DAYS_PER_WEEK} rows, got {len(self.rows)}"
            )
        widths = {len(row) for row in self.rows}
        if len(widths) != 1:
            raise ValueError(f"Pattern {self.name!r} rows must all have the same width")

    @classmethod
    def from_rows(cls, name: str, rows: Sequence[Sequence[int]]) -> PatternGrid:
        return cls(name=name, rows=tuple(tuple(bool(cell) for cell in row) for row in rows))

    @property
    def weeks(self) -> int:
        return len(self.rows[0])

    @property
    def active_cells(self) -> int:
        return sum(cell for row in self.rows for cell in row)

    def is_set(self, day: int, week: int) -> bool:
        return self.rows[day][week]


PATTERNS: dict[str, PatternGrid] = {
    grid.name: grid
    for grid in (
        PatternGrid.from_rows(
            "heart",
            [
                [0, 1, 1, 0, 0, 1, 1, 0],
                [1, 1, 1, 1, 1, 1, 1, 1],
                [1, 1, 1, 1, 1, 1, 1, 1],
                [1, 1, 1, 1, 1, 1, 1, 1],
                [0, 1, 1, 1, 1, 1, 1, 0],
                [0, 0, 1, 1, 1, 1, 0, 0],
                [0, 0, 0, 1, 1, 0, 0, 0],
            ],
        ),
        PatternGrid.from_rows(
            "hi",
            [
                [1, 0, 1, 0, 1, 1, 1],
                [1, 0, 1, 0, 0, 1, 0],
                [1, 1, 1, 0, 0, 1, 0],
                [1, 0, 1, 0, 0, 1, 0],
                [1, 0, 1, 0, 0, 1, 0],
                [1, 0, 1, 0, 0, 1, 0],
                [1, 0, 1, 0, 1, 1, 1],
            ],
        ),
        PatternGrid.from_rows(
            "smiley",
            [
                [0, 0, 1, 1, 1, 1, 0, 0],
                [0, 1, 0, 0, 0, 0, 1, 0],
                [1, 0, 1, 0, 0, 1, 0, 1],
                [1, 0, 0, 0, 0, 0, 0, 1],
                [1, 0, 1, 0, 0, 1, 0, 1],
                [0, 1, 0, 1, 1, 0, 1, 0],
                [0, 0, 1, 1, 1, 1, 0, 0],
            ],
        ),
        PatternGrid.from_rows(
            "checkerboard",
            [
                [1, 0, 1, 0, 1, 0, 1, 0],
                [0, 1, 0, 1, 0, 1, 0, 1],
                [1, 0, 1, 0, 1, 0, 1, 0],
                [0, 1, 0, 1, 0, 1, 0, 1],
                [1, 0, 1, 0, 1, 0, 1, 0],
                [0, 1, 0, 1, 0, 1, 0, 1],
                [1, 0, 1, 0, 1, 0, 1, 0],
            ],
        ),
        PatternGrid.from_rows(
            "wave",
            [
                [0, 0, 0, 1, 0, 0, 0, 1],
                [0, 0, 1, 0, 0, 0, 1, 0],
                [0, 1, 0, 0, 0, 1, 0, 0],
                [1, 0, 0, 0, 1, 0, 0, 0],
                [0, 1, 0, 0, 0, 1, 0, 0],
                [0, 0, 1, 0, 0, 0, 1, 0],
                [0, 0, 0, 1, 0, 0, 0, 1],
            ],
        ),
    )
}


def list_patterns() -> list[str]:
    return list(PATTERNS)


def get_pattern(name: str) -> PatternGrid:
    """Look up a built-in pattern. Never falls back to a default."""
    try:
        return PATTERNS[name]
    except KeyError:
        raise PatternNotFoundError(name, list_patterns()) from None


def subtract_years(day: date, years: int) -> date:
    """Calendar-aware year subtraction; Feb 29 clamps to Feb 28."""
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        return day.replace(year=day.year - years, day=28)


class CoordinateMapper:
    """Maps contribution graph positions onto concrete timestamps.

    Week 0 starts one day after "today minus years_back years", so the same
    (week, day) pair always lands on the same date for a given calendar day.
    """

    def __init__(
        self,
        years_back: int = 1,
        timezone: str = "UTC",
        today: Callable[[], date] | None = None,
    ):
        self.years_back = years_back
        self.tz = ZoneInfo(timezone)
        self._today = today or (lambda: datetime.now(self.tz).date())

    def origin(self) -> date:
        """Calendar date of graph position (week 0, day 0)."""
        return subtract_years(self._today(), self.years_back) + timedelta(days=1)

    def date_for_offset(self, weeks_back: int, day_of_week: int) -> datetime:
        target = self.origin() + timedelta(weeks=weeks_back, days=day_of_week)
        return datetime.combine(target, ANCHOR_TIME, tzinfo=self.tz)

    def expand_pattern(
        self,
        grid: PatternGrid,
        start_week_offset: int,
        intensity: int,
    ) -> list[datetime]:
        """
        Expand a pattern into commit timestamps.

        Traversal is column-major: week by week, then day within week. Each
        active cell contributes `intensity` consecutive copies of its timestamp.
        """
        if intensity < 1:
            raise ValueError(f"intensity must be >= 1, got {intensity}")

        timestamps: list[datetime] = []
        for week in range(grid.weeks):
            for day in range(DAYS_PER_WEEK):
                if grid.is_set(day, week):
                    stamp = self.date_for_offset(start_week_offset + week, day)
                    timestamps.extend([stamp] * intensity)
        return timestamps
