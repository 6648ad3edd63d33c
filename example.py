#!/usr/bin/env python3
# SPDX-License-Identifier: MPL-2.0
"""
Example usage of the Octopus Energy report helpers.

This script demonstrates how to use the OctopusEnergyClient to fetch
yesterday's electricity usage and cost, the running billing period total and
the cheapest time to run a 2 hour appliance tomorrow.
"""

from datetime import date, timedelta

from octopus_report.octopus import OctopusEnergyClient
from octopus_report.report import ReportOptions, get_electricity_report


def main():
    """Example usage of the electricity report."""

    # Configuration parameters
    PRODUCT_CODE = 'AGILE-24-10-01'
    TARIFF_CODE = 'E-1R-AGILE-24-10-01-N'
    MPAN = '1200000000000'
    SERIAL_NUMBER = '21L0000000'

    day = date.today() - timedelta(days=1)
    options = ReportOptions(billing_period_day=15, usage_intervals=[2])

    with OctopusEnergyClient() as client:
        print(f"Fetching electricity report for {day}\n")

        report = get_electricity_report(
            client, PRODUCT_CODE, TARIFF_CODE, MPAN, SERIAL_NUMBER, day, options
        )

    if report.error is not None:
        print(f"Error fetching data: {report.error}")
        return 1

    if not report.is_data_available:
        print("Meter data for that day is not available yet")
        return 1

    print(f"  Usage:           {report.kwh} kWh (average {report.kwh_avg:.3f} kWh/day)")
    print(f"  Price:           {report.price:.2f}p")
    print(f"  Standing charge: {report.standing_charge:.2f}p/day")

    if report.billing_period:
        period = report.billing_period
        print(f"\nSince {period.billing_start_date}:")
        print(f"  {period.kwh:.3f} kWh, {period.price / 100:.2f} GBP")

    if report.best_consumption_times:
        for hours, start_hour in report.best_consumption_times.items():
            if start_hour < 0:
                print(f"\nNo complete rates tomorrow for a {hours:g} hour window")
                continue
            print(f"\nCheapest {hours:g} hour window tomorrow starts at "
                  f"{int(start_hour):02d}:{int(start_hour % 1 * 60):02d}")

    return 0


if __name__ == "__main__":
    exit(main())
