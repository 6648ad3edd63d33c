# SPDX-License-Identifier: MPL-2.0
"""
Billing period aggregation.

A billing period starts on a fixed day of the month. These helpers sum the
cost and usage from the start of the current period up to (but excluding)
today.
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import date, timedelta, tzinfo
from typing import Any, Dict, Mapping, Optional, Sequence

from octopus_report.octopus import MeterReading
from octopus_report.pricing import get_electricity_price_by_date

logger = logging.getLogger(__name__)


@dataclass
class BillingPeriod:
    """Running totals for the current billing period."""
    billing_start_date: date
    price: float = 0.0  # pence, standing charges included
    kwh: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'price': self.price,
            'kwh': self.kwh,
            'billing_start_date': self.billing_start_date.isoformat(),
        }


def get_billing_start_date(billing_day: int, today: Optional[date] = None) -> date:
    """
    Return the start date of the billing period containing today.

    If today's day of the month is before billing_day the period started in
    the previous month. A billing_day past the end of that month is clamped
    to the month's last day.

    Args:
        billing_day: Day of the month the billing period starts (1-31)
        today: Reference date (default: date.today())

    Returns:
        First day of the current billing period
    """
    if today is None:
        today = date.today()

    if not 1 <= billing_day <= 31:
        raise ValueError(f"Billing day must be 1-31, got {billing_day}")

    year, month = today.year, today.month
    if today.day < billing_day:
        if month == 1:
            year, month = year - 1, 12
        else:
            month -= 1

    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(billing_day, last_day))


def get_electricity_consumption_for_billing_period(
    readings: Sequence[MeterReading],
    usage_by_day: Mapping[str, float],
    rates: Mapping[str, float],
    standing_charge: float,
    billing_day: int = 1,
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None
) -> BillingPeriod:
    """
    Return electricity usage in kWh and pence since the start of the billing period.

    Each day adds its half-hourly price and the standing charge. Today is not
    included.
    """
    if today is None:
        today = date.today()

    result = BillingPeriod(billing_start_date=get_billing_start_date(billing_day, today))

    d = result.billing_start_date
    while d < today:
        result.price += get_electricity_price_by_date(readings, rates, d, tz) + standing_charge
        result.kwh += usage_by_day.get(d.isoformat(), 0)

        d += timedelta(days=1)

    logger.debug(f"Electricity billing period from {result.billing_start_date}: "
                 f"{result.kwh:.3f} kWh, {result.price:.2f}p")
    return result


def get_gas_consumption_for_billing_period(
    usage_by_day: Mapping[str, float],
    rate: float,
    standing_charge: float,
    m3_to_kwh: float,
    billing_day: int = 1,
    today: Optional[date] = None
) -> BillingPeriod:
    """
    Return gas usage in kWh and pence since the start of the billing period.

    Daily usage is read in m3 and converted with m3_to_kwh. Today is not
    included.
    """
    if today is None:
        today = date.today()

    result = BillingPeriod(billing_start_date=get_billing_start_date(billing_day, today))

    d = result.billing_start_date
    while d < today:
        kwh = usage_by_day.get(d.isoformat(), 0) * m3_to_kwh

        result.price += kwh * rate + standing_charge
        result.kwh += kwh

        d += timedelta(days=1)

    logger.debug(f"Gas billing period from {result.billing_start_date}: "
                 f"{result.kwh:.3f} kWh, {result.price:.2f}p")
    return result
