# SPDX-License-Identifier: MPL-2.0
"""
Electricity and gas report assembly.

A report is built from freshly fetched provider data for one day. The outcome
is one of three kinds: data available, data not yet available for the day,
or a failure while fetching/computing (the exception is kept on the report).
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta, tzinfo
from enum import Enum
from typing import Any, Dict, List, Optional

from octopus_report.aggregation import get_average_consumption_per_period, sum_readings_by_day
from octopus_report.billing import (
    BillingPeriod,
    get_electricity_consumption_for_billing_period,
    get_gas_consumption_for_billing_period,
)
from octopus_report.octopus import ELECTRICITY, GAS, OctopusEnergyClient
from octopus_report.pricing import get_best_consumption_time, get_electricity_price_by_date

logger = logging.getLogger(__name__)


class ReportStatus(Enum):
    """Outcome of building a report."""
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


@dataclass
class ReportOptions:
    """
    Optional report sections.

    Attributes:
        billing_period_day: Day of month the billing period starts; enables the billing summary
        usage_intervals: Appliance run lengths in hours to find the cheapest start for
        usage_intervals_start_hour: Earliest start hour considered for usage intervals
    """
    billing_period_day: Optional[int] = None
    usage_intervals: List[float] = field(default_factory=list)
    usage_intervals_start_hour: float = 0


@dataclass
class Report:
    """Energy report for a single day."""
    status: ReportStatus
    energy_type: str
    date: date
    kwh: Optional[float] = None
    kwh_avg: Optional[float] = None
    standing_charge: Optional[float] = None
    price: Optional[float] = None
    rates: Optional[Dict[str, float]] = None  # electricity only
    rate: Optional[float] = None  # gas only
    billing_period: Optional[BillingPeriod] = None
    best_consumption_times: Optional[Dict[float, float]] = None
    error: Optional[Exception] = None

    @property
    def is_data_available(self) -> bool:
        return self.status is ReportStatus.AVAILABLE

    @classmethod
    def unavailable(cls, energy_type: str, day: date) -> 'Report':
        """Report for a day the meter has not reported yet."""
        return cls(status=ReportStatus.UNAVAILABLE, energy_type=energy_type, date=day)

    @classmethod
    def failed(cls, energy_type: str, day: date, error: Exception) -> 'Report':
        """Report for a day whose data could not be fetched or computed."""
        return cls(status=ReportStatus.ERROR, energy_type=energy_type, date=day, error=error)

    def to_dict(self) -> Dict[str, Any]:
        """
        Return the report as a JSON-serializable dictionary.

        Reports without data only carry is_data_available (and error when
        a failure was caught).
        """
        if not self.is_data_available:
            result: Dict[str, Any] = {'is_data_available': False}
            if self.error is not None:
                result['error'] = str(self.error)
            return result

        result = {
            'is_data_available': True,
            'energy_type': self.energy_type,
            'date': self.date.isoformat(),
            'kwh': self.kwh,
            'kwh_avg': self.kwh_avg,
            'standing_charge': self.standing_charge,
            'price': self.price,
        }

        if self.rates is not None:
            result['rates'] = self.rates
        if self.rate is not None:
            result['rate'] = self.rate
        if self.billing_period is not None:
            result['billing_period'] = self.billing_period.to_dict()
        if self.best_consumption_times is not None:
            result['best_consumption_times'] = {
                f"{hours:g}": start_hour for hours, start_hour in self.best_consumption_times.items()
            }

        return result


def get_electricity_report(
    client: OctopusEnergyClient,
    product_code: Optional[str],
    tariff_code: str,
    mpan: str,
    serial_number: str,
    day: date,
    options: Optional[ReportOptions] = None,
    tz: Optional[tzinfo] = None,
    today: Optional[date] = None
) -> Report:
    """
    Return a full electricity report for the given day.

    Best consumption times are searched in the next day's rates, which the
    provider publishes in advance for dynamic tariffs.

    Args:
        client: Octopus Energy API client
        product_code: Product code; derived from tariff_code if None
        tariff_code: Electricity tariff code
        mpan: Meter Point Administration Number
        serial_number: Electricity meter serial number
        day: Day to report on
        options: Optional report sections
        tz: Local timezone for half-hour slots (default: system local timezone)
        today: Reference date for the billing period (default: date.today())

    Returns:
        Report with status AVAILABLE, UNAVAILABLE or ERROR
    """
    if options is None:
        options = ReportOptions()

    day_key = day.isoformat()

    try:
        if not client.check_if_data_available(mpan, serial_number, ELECTRICITY, day_key):
            logger.info(f"Electricity data for {day_key} not available yet")
            return Report.unavailable(ELECTRICITY, day)

        if not product_code:
            product_code = client.extract_product_code(tariff_code)

        readings = client.get_readings(mpan, serial_number, ELECTRICITY)
        usage_by_day = sum_readings_by_day(readings)

        kwh = usage_by_day.get(day_key)
        kwh_avg = get_average_consumption_per_period(usage_by_day)

        rates = client.get_electricity_rates_by_time(product_code, tariff_code)
        standing_charge = client.get_standing_charge(product_code, tariff_code, ELECTRICITY)

        price = get_electricity_price_by_date(readings, rates, day, tz)

        billing_period = None
        if options.billing_period_day:
            billing_period = get_electricity_consumption_for_billing_period(
                readings, usage_by_day, rates, standing_charge,
                options.billing_period_day, today, tz
            )

        best_consumption_times = None
        if options.usage_intervals:
            next_day = day + timedelta(days=1)
            best_consumption_times = {
                hours: get_best_consumption_time(
                    rates, next_day, hours, options.usage_intervals_start_hour, tz
                ).start_hour
                for hours in options.usage_intervals
            }

        logger.info(f"Electricity report for {day_key}: {kwh} kWh, {price:.2f}p")
        return Report(
            status=ReportStatus.AVAILABLE,
            energy_type=ELECTRICITY,
            date=day,
            kwh=kwh,
            kwh_avg=kwh_avg,
            standing_charge=standing_charge,
            rates=rates,
            price=price,
            billing_period=billing_period,
            best_consumption_times=best_consumption_times,
        )

    except Exception as e:
        logger.error(f"Failed to build electricity report for {day_key}: {e}")
        return Report.failed(ELECTRICITY, day, e)


def get_gas_report(
    client: OctopusEnergyClient,
    product_code: Optional[str],
    tariff_code: str,
    mprn: str,
    serial_number: str,
    m3_to_kwh: float,
    day: date,
    options: Optional[ReportOptions] = None,
    today: Optional[date] = None
) -> Report:
    """
    Return a full gas report for the given day.

    Gas meters report volume; usage is converted to kWh with m3_to_kwh.
    Usage intervals do not apply to gas, which has a single current rate.

    Args:
        client: Octopus Energy API client
        product_code: Product code; derived from tariff_code if None
        tariff_code: Gas tariff code
        mprn: Meter Point Reference Number
        serial_number: Gas meter serial number
        m3_to_kwh: Volume to energy conversion factor
        day: Day to report on
        options: Optional report sections
        today: Reference date for the billing period (default: date.today())

    Returns:
        Report with status AVAILABLE, UNAVAILABLE or ERROR
    """
    if options is None:
        options = ReportOptions()

    day_key = day.isoformat()

    try:
        if not client.check_if_data_available(mprn, serial_number, GAS, day_key):
            logger.info(f"Gas data for {day_key} not available yet")
            return Report.unavailable(GAS, day)

        if not product_code:
            product_code = client.extract_product_code(tariff_code)

        readings = client.get_readings(mprn, serial_number, GAS)
        usage_by_day = sum_readings_by_day(readings)

        kwh = None
        if day_key in usage_by_day:
            kwh = usage_by_day[day_key] * m3_to_kwh
        kwh_avg = get_average_consumption_per_period(usage_by_day) * m3_to_kwh

        standing_charge = client.get_standing_charge(product_code, tariff_code, GAS)
        rate = client.get_gas_rate(product_code, tariff_code)

        price = kwh * rate if kwh is not None else None

        billing_period = None
        if options.billing_period_day:
            billing_period = get_gas_consumption_for_billing_period(
                usage_by_day, rate, standing_charge, m3_to_kwh,
                options.billing_period_day, today
            )

        logger.info(f"Gas report for {day_key}: {kwh} kWh, {price}p")
        return Report(
            status=ReportStatus.AVAILABLE,
            energy_type=GAS,
            date=day,
            kwh=kwh,
            kwh_avg=kwh_avg,
            standing_charge=standing_charge,
            rate=rate,
            price=price,
            billing_period=billing_period,
        )

    except Exception as e:
        logger.error(f"Failed to build gas report for {day_key}: {e}")
        return Report.failed(GAS, day, e)
