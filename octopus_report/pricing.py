# SPDX-License-Identifier: MPL-2.0
"""
Half-hourly price calculations.

Meter readings and unit rates are both keyed by provider timestamp strings.
Depending on the endpoint the same instant is encoded either in UTC
('2025-06-01T23:00:00Z') or as local time with an offset
('2025-06-02T00:00:00+01:00'), so every half-hour slot is looked up under
both encodings.

Known limitation: the offset encoding always uses a literal '+01:00' suffix
and does not follow daylight saving changes.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, time as dt_time, timezone, tzinfo
from typing import List, Mapping, Optional, Sequence, Tuple, TypeVar

from octopus_report.aggregation import readings_to_dict
from octopus_report.octopus import MeterReading

logger = logging.getLogger(__name__)

LOCAL_OFFSET_SUFFIX = '+01:00'
SLOTS_PER_DAY = 48

V = TypeVar('V')


@dataclass(frozen=True)
class ConsumptionWindow:
    """
    Cheapest start time for running an appliance.

    Attributes:
        start_hour: Start as fractional hour of the day (2.5 = 02:30), -1 if no window fits
        cost: Sum of the half-hourly rates in the window, None if no window fits
    """
    start_hour: float
    cost: Optional[float]

    @property
    def found(self) -> bool:
        return self.cost is not None


NO_MATCH = ConsumptionWindow(start_hour=-1, cost=None)


def slot_instant(day: date, slot: int, tz: Optional[tzinfo] = None) -> datetime:
    """
    Return the start of a half-hour slot as a timezone-aware datetime.

    Args:
        day: Local calendar day
        slot: Slot index within the day (0 = 00:00, 1 = 00:30, ..., 47 = 23:30)
        tz: Local timezone (default: system local timezone)
    """
    naive = datetime.combine(day, dt_time(slot // 2, 30 * (slot % 2)))
    if tz is None:
        return naive.astimezone()
    return naive.replace(tzinfo=tz)


def half_hour_slots(day: date, tz: Optional[tzinfo] = None) -> List[datetime]:
    """Return the 48 slot start instants of a local calendar day."""
    return [slot_instant(day, slot, tz) for slot in range(SLOTS_PER_DAY)]


def slot_keys(instant: datetime) -> Tuple[str, str]:
    """
    Return both provider encodings of an instant.

    Returns:
        Tuple of (UTC key with 'Z' suffix, local wall clock key with '+01:00' suffix)
    """
    utc_key = instant.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')
    local_key = instant.strftime('%Y-%m-%dT%H:%M:%S') + LOCAL_OFFSET_SUFFIX
    return utc_key, local_key


def lookup_by_instant(values: Mapping[str, V], instant: datetime) -> Optional[V]:
    """
    Look up a value by instant, preferring the UTC key over the offset key.

    Returns:
        The first value present, or None if neither key exists
    """
    for key in slot_keys(instant):
        if key in values:
            return values[key]
    return None


def get_electricity_price_by_date(
    readings: Sequence[MeterReading],
    rates: Mapping[str, float],
    day: date,
    tz: Optional[tzinfo] = None
) -> float:
    """
    Return the price in pence of the electricity used on a day.

    Sums reading * rate over the 48 half-hour slots; a slot missing either
    a reading or a rate contributes nothing.

    Args:
        readings: Meter readings
        rates: Unit rates keyed by provider timestamp
        day: Local calendar day
        tz: Local timezone (default: system local timezone)
    """
    readings_dict = readings_to_dict(readings)

    result = 0.0
    for instant in half_hour_slots(day, tz):
        reading = lookup_by_instant(readings_dict, instant) or 0
        rate = lookup_by_instant(rates, instant) or 0

        result += reading * rate

    return result


def get_best_consumption_time(
    rates: Mapping[str, float],
    day: date,
    hours: float,
    start_hour: float = 0,
    tz: Optional[tzinfo] = None
) -> ConsumptionWindow:
    """
    Find the cheapest start time to use electricity for a number of hours.

    Every start from start_hour to 23:30 - hours is tried in half-hour steps.
    A candidate whose window has a slot without any rate has no cost and is
    never selected. On equal cost the earliest start wins.

    Args:
        rates: Unit rates keyed by provider timestamp
        day: Local calendar day to search
        hours: Window length in hours (multiples of 0.5)
        start_hour: Earliest start hour (default: 0)
        tz: Local timezone (default: system local timezone)

    Returns:
        The cheapest ConsumptionWindow, or NO_MATCH if no candidate has a cost
    """
    window_slots = math.ceil(hours * 2)
    first_slot = math.ceil(start_hour * 2)
    last_slot = math.floor((23.5 - hours) * 2)

    best = NO_MATCH
    for start in range(first_slot, last_slot + 1):
        window_rates = [
            lookup_by_instant(rates, slot_instant(day, slot, tz))
            for slot in range(start, start + window_slots)
        ]

        if any(rate is None for rate in window_rates):
            logger.debug(f"Skipping {hours}h window at {start / 2}: missing rates")
            continue

        cost = sum(rate for rate in window_rates if rate is not None)
        if best.cost is None or cost < best.cost:
            best = ConsumptionWindow(start_hour=start / 2, cost=cost)

    logger.debug(f"Best {hours}h window on {day}: {best}")
    return best
