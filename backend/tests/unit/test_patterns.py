"""
Unit Tests: Coordinate Mapper

Test cases:
- Graph position -> calendar date anchoring
- Determinism within a calendar day
- Pattern expansion count and column-major order
- Unknown pattern names
"""

import sys
from datetime import date, datetime, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from greenboard.patterns import (
    PATTERNS,
    CoordinateMapper,
    PatternGrid,
    PatternNotFoundError,
    get_pattern,
    list_patterns,
    subtract_years,
)

TODAY = date(2026, 3, 15)


def _mapper(today: date = TODAY, years_back: int = 1) -> CoordinateMapper:
    return CoordinateMapper(years_back=years_back, timezone="UTC", today=lambda: today)


def _single_cell_grid(day: int, weeks: int = 1, week: int = 0) -> PatternGrid:
    rows = [[0] * weeks for _ in range(7)]
    rows[day][week] = 1
    return PatternGrid.from_rows("single", rows)


class TestDateForOffset:
    def test_origin_is_one_day_after_years_back(self):
        assert _mapper().origin() == date(2025, 3, 16)

    def test_week_zero_day_zero(self):
        stamp = _mapper().date_for_offset(0, 0)
        assert stamp == datetime(2025, 3, 16, 12, 0, tzinfo=timezone.utc)

    def test_weeks_and_days_are_added(self):
        stamp = _mapper().date_for_offset(2, 3)
        assert stamp.date() == date(2025, 4, 2)

    def test_same_inputs_same_day_give_same_result(self):
        mapper = _mapper()
        assert mapper.date_for_offset(17, 4) == mapper.date_for_offset(17, 4)

    def test_result_depends_only_on_calendar_day(self):
        # Two mappers built at different moments of the same day agree
        first = _mapper(date(2026, 3, 15))
        second = _mapper(date(2026, 3, 15))
        assert first.date_for_offset(30, 6) == second.date_for_offset(30, 6)

    def test_years_back_moves_origin(self):
        assert _mapper(years_back=2).origin() == date(2024, 3, 16)

    def test_timezone_is_attached(self):
        mapper = CoordinateMapper(timezone="America/New_York", today=lambda: TODAY)
        stamp = mapper.date_for_offset(0, 0)
        assert stamp.tzinfo is not None
        assert stamp.utcoffset() is not None


def test_subtract_years_clamps_leap_day():
    assert subtract_years(date(2024, 2, 29), 1) == date(2023, 2, 28)
    assert subtract_years(date(2024, 3, 1), 1) == date(2023, 3, 1)


class TestExpandPattern:
    def test_single_cell_column_repeats_intensity_times(self):
        mapper = _mapper()
        grid = _single_cell_grid(day=0)

        stamps = mapper.expand_pattern(grid, start_week_offset=5, intensity=3)

        assert len(stamps) == 3
        assert all(s == mapper.date_for_offset(5, 0) for s in stamps)

    def test_length_is_cells_times_intensity(self):
        grid = get_pattern("heart")
        stamps = _mapper().expand_pattern(grid, 0, 2)
        assert len(stamps) == grid.active_cells * 2

    def test_column_major_order(self):
        rows = [[0, 0] for _ in range(7)]
        rows[5][0] = 1
        rows[1][0] = 1
        rows[0][1] = 1
        grid = PatternGrid.from_rows("order", rows)
        mapper = _mapper()

        stamps = mapper.expand_pattern(grid, start_week_offset=10, intensity=2)

        expected_cells = [(10, 1), (10, 5), (11, 0)]
        runs = [stamps[i:i + 2] for i in range(0, len(stamps), 2)]
        assert len(runs) == len(expected_cells)
        for run, (week, day) in zip(runs, expected_cells):
            assert run == [mapper.date_for_offset(week, day)] * 2

    def test_timestamps_never_decrease(self):
        stamps = _mapper().expand_pattern(get_pattern("wave"), 3, 1)
        assert stamps == sorted(stamps)

    def test_intensity_must_be_positive(self):
        with pytest.raises(ValueError):
            _mapper().expand_pattern(get_pattern("hi"), 0, 0)

    def test_empty_grid_yields_nothing(self):
        grid = PatternGrid.from_rows("blank", [[0, 0, 0]] * 7)
        assert _mapper().expand_pattern(grid, 0, 5) == []


class TestPatternLookup:
    def test_builtin_patterns(self):
        assert list_patterns() == ["heart", "hi", "smiley", "checkerboard", "wave"]

    def test_builtins_have_seven_rows(self):
        for grid in PATTERNS.values():
            assert len(grid.rows) == 7
            assert grid.active_cells > 0

    def test_unknown_pattern_names_key_and_choices(self):
        with pytest.raises(PatternNotFoundError) as exc_info:
            get_pattern("spiral")

        message = str(exc_info.value)
        assert "spiral" in message
        for name in list_patterns():
            assert name in message
        assert exc_info.value.available == list_patterns()

    def test_grid_requires_seven_rows(self):
        with pytest.raises(ValueError):
            PatternGrid.from_rows("short", [[1, 0]] * 6)

    def test_grid_requires_rectangular_rows(self):
        rows = [[1, 0]] * 6 + [[1]]
        with pytest.raises(ValueError):
            PatternGrid.from_rows("ragged", rows)
