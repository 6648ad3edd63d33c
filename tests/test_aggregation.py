#SPDX-License-Identifier: MPL-2.0
"""
Unit tests for meter reading aggregation.
"""

import pytest

from octopus_report.aggregation import (
    get_average_consumption_per_period,
    readings_to_dict,
    sum_readings_by_day,
)
from octopus_report.octopus import MeterReading


def create_reading(interval_start: str, consumption: float) -> MeterReading:
    """Helper to create a MeterReading for testing."""
    return MeterReading({
        'interval_start': interval_start,
        'interval_end': None,
        'consumption': consumption
    })


class TestReadingsToDict:
    """Test readings keyed by interval start."""

    def test_one_entry_per_interval(self):
        """Test each distinct interval_start appears once."""
        readings = [
            create_reading('2025-12-01T00:00:00Z', 0.2),
            create_reading('2025-12-01T00:30:00Z', 0.3),
        ]

        assert readings_to_dict(readings) == {
            '2025-12-01T00:00:00Z': 0.2,
            '2025-12-01T00:30:00Z': 0.3,
        }

    def test_last_write_wins(self):
        """Test later duplicates overwrite earlier readings."""
        readings = [
            create_reading('2025-12-01T00:00:00Z', 0.2),
            create_reading('2025-12-01T00:00:00Z', 0.7),
        ]

        assert readings_to_dict(readings) == {'2025-12-01T00:00:00Z': 0.7}

    def test_empty(self):
        """Test no readings gives an empty dictionary."""
        assert readings_to_dict([]) == {}


class TestSumReadingsByDay:
    """Test daily consumption totals."""

    def test_sums_per_day(self):
        """Test readings are grouped by the date prefix of interval_start."""
        readings = [
            create_reading('2025-12-01T23:30:00Z', 0.5),
            create_reading('2025-12-01T00:00:00Z', 0.25),
            create_reading('2025-11-30T12:00:00Z', 1.0),
        ]

        assert sum_readings_by_day(readings) == {
            '2025-12-01': 0.75,
            '2025-11-30': 1.0,
        }

    def test_offset_timestamps_use_local_date(self):
        """Test the provider's date is used as-is without timezone conversion."""
        readings = [create_reading('2025-06-01T00:30:00+01:00', 0.4)]

        assert sum_readings_by_day(readings) == {'2025-06-01': 0.4}

    def test_matches_dict_grouping(self):
        """Test totals equal readings_to_dict values grouped by day for unique intervals."""
        readings = [
            create_reading('2025-12-01T00:00:00Z', 0.5),
            create_reading('2025-12-01T00:30:00Z', 1.5),
            create_reading('2025-12-02T00:00:00Z', 2.0),
        ]

        grouped = {}
        for key, value in readings_to_dict(readings).items():
            grouped[key[:10]] = grouped.get(key[:10], 0) + value

        assert sum_readings_by_day(readings) == grouped


class TestAverageConsumption:
    """Test average over reported days."""

    def test_average_over_days_present(self):
        """Test only days present in the map are counted."""
        # 2025-12-02 missing on purpose: the average is over 2 days, not 3
        assert get_average_consumption_per_period({'2025-12-01': 4.0, '2025-12-03': 8.0}) == 6.0

    def test_single_day(self):
        """Test a single day averages to itself."""
        assert get_average_consumption_per_period({'2025-12-01': 3.5}) == 3.5

    def test_empty_raises(self):
        """Test an empty map is not silently defaulted."""
        with pytest.raises(ZeroDivisionError):
            get_average_consumption_per_period({})
