# SPDX-License-Identifier: MPL-2.0
"""
Meter reading aggregation helpers.

Turns raw interval readings into lookups by timestamp and by calendar day.
"""

from typing import Dict, Iterable, Mapping

from octopus_report.octopus import MeterReading


def readings_to_dict(readings: Iterable[MeterReading]) -> Dict[str, float]:
    """
    Return readings as a dictionary of interval_start -> consumption.

    Later readings overwrite earlier ones with the same interval_start.
    """
    return {r.interval_start: r.consumption for r in readings}


def sum_readings_by_day(readings: Iterable[MeterReading]) -> Dict[str, float]:
    """
    Return consumption summed per day, keyed by date (YYYY-MM-DD).

    The day is the first 10 characters of interval_start as supplied by the
    provider, so no timezone conversion takes place.
    """
    result: Dict[str, float] = {}

    for r in readings:
        key = r.interval_start[:10]
        result[key] = result.get(key, 0) + r.consumption

    return result


def get_average_consumption_per_period(grouped_readings: Mapping[str, float]) -> float:
    """
    Return the average consumption over the days present in grouped_readings.

    Only days that appear as keys count; gaps in the calendar are ignored.

    Raises:
        ZeroDivisionError: If grouped_readings is empty
    """
    return sum(grouped_readings.values()) / len(grouped_readings)
