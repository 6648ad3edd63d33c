# SPDX-License-Identifier: MPL-2.0
"""
Energy report command line tool

Reads meter and tariff settings from an INI configuration file, builds an
electricity or gas report for one day and prints it as JSON.

Exit status is 0 when data was available, 1 when it was not (or fetching
failed) and 2 on configuration errors.
"""

import argparse
import configparser
import json
import logging
import os
import sys
from dataclasses import dataclass, field
from datetime import date, timedelta
from pathlib import Path
from typing import List, Optional, Sequence

from octopus_report.octopus import ELECTRICITY, GAS, OctopusEnergyClient
from octopus_report.report import Report, ReportOptions, get_electricity_report, get_gas_report

# Logger will be configured later based on config/CLI args
logger = logging.getLogger(__name__)

# Typical UK calorific value (39.3 MJ/m3) with volume correction, per kWh
DEFAULT_M3_TO_KWH = 11.1868


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""
    pass


@dataclass
class Config:
    """Application configuration."""
    # Octopus Energy API
    product_code: Optional[str] = None
    timeout: int = 30

    # Electricity meter and tariff
    electricity_tariff_code: Optional[str] = None
    electricity_mpan: Optional[str] = None
    electricity_serial_number: Optional[str] = None

    # Gas meter and tariff
    gas_product_code: Optional[str] = None
    gas_tariff_code: Optional[str] = None
    gas_mprn: Optional[str] = None
    gas_serial_number: Optional[str] = None
    m3_to_kwh: float = DEFAULT_M3_TO_KWH

    # Report options
    billing_period_day: Optional[int] = None
    usage_intervals: List[float] = field(default_factory=list)
    usage_intervals_start_hour: float = 0

    # Logging
    logging_level: str = 'WARNING'  # Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    def report_options(self) -> ReportOptions:
        return ReportOptions(
            billing_period_day=self.billing_period_day,
            usage_intervals=list(self.usage_intervals),
            usage_intervals_start_hour=self.usage_intervals_start_hour,
        )


def parse_billing_day(value: str) -> int:
    """
    Parse billing period day of month.

    Raises:
        ValueError: If value is not an integer in 1-31
    """
    try:
        day = int(value)
    except ValueError:
        raise ValueError(f"Invalid billing day: '{value}'. Expected a day of month (1-31)")

    if not 1 <= day <= 31:
        raise ValueError(f"Billing day must be 1-31, got {day}")
    return day


def parse_hours(value: str, param_name: str = "usage interval") -> float:
    """
    Parse a number of hours given in half-hour steps (e.g. '2', '1.5').

    Raises:
        ValueError: If value is not a non-negative multiple of 0.5 up to 24
    """
    try:
        hours = float(value)
    except ValueError:
        raise ValueError(f"Invalid {param_name}: '{value}'. Expected hours, e.g. '2' or '1.5'")

    if not 0 <= hours <= 24 or (hours * 2) != int(hours * 2):
        raise ValueError(f"Invalid {param_name}: '{value}'. Must be 0-24 in steps of 0.5")
    return hours


def parse_usage_intervals(value: str) -> List[float]:
    """Parse a whitespace separated list of usage intervals (e.g. '1 2 3.5')."""
    return [parse_hours(item) for item in value.split()]


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD date for argparse."""
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date: '{value}'. Expected YYYY-MM-DD")


def default_config_paths() -> List[str]:
    """Return configuration search paths in priority order."""
    return [
        "octopus-report.conf",
        os.path.expanduser("~/.config/octopus-report/octopus-report.conf"),
        "/etc/octopus-report/octopus-report.conf",
    ]


def find_default_config() -> Optional[str]:
    """
    Find configuration file using standard search paths.

    Search order:
    1. ./octopus-report.conf
    2. ~/.config/octopus-report/octopus-report.conf
    3. /etc/octopus-report/octopus-report.conf

    Returns:
        Path to first existing config file, or None if none found
    """
    for path in default_config_paths():
        if os.path.exists(path):
            logger.debug(f"Found configuration file: {path}")
            return path

    return None


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from INI file.

    Args:
        config_path: Path to configuration INI file. If None, searches default locations.

    Returns:
        Config object with all settings

    Raises:
        ConfigurationError: If configuration is invalid or missing
    """
    if config_path is None:
        config_path = find_default_config()
        if config_path is None:
            raise ConfigurationError(
                "No configuration file found. Searched: " + ", ".join(default_config_paths())
            )

    if not Path(config_path).exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    parser = configparser.ConfigParser(interpolation=None, inline_comment_prefixes=(';', '#'))
    try:
        parser.read(config_path)
    except configparser.Error as e:
        raise ConfigurationError(f"Invalid configuration file {config_path}: {e}")

    config = Config()

    try:
        if parser.has_section('octopus'):
            if parser.has_option('octopus', 'product_code'):
                config.product_code = parser.get('octopus', 'product_code')
            if parser.has_option('octopus', 'timeout'):
                config.timeout = parser.getint('octopus', 'timeout')

        if parser.has_section('electricity'):
            config.electricity_tariff_code = parser.get('electricity', 'tariff_code', fallback=None)
            config.electricity_mpan = parser.get('electricity', 'mpan', fallback=None)
            config.electricity_serial_number = parser.get('electricity', 'serial_number', fallback=None)

        if parser.has_section('gas'):
            config.gas_product_code = parser.get('gas', 'product_code', fallback=None)
            config.gas_tariff_code = parser.get('gas', 'tariff_code', fallback=None)
            config.gas_mprn = parser.get('gas', 'mprn', fallback=None)
            config.gas_serial_number = parser.get('gas', 'serial_number', fallback=None)
            if parser.has_option('gas', 'm3_to_kwh'):
                config.m3_to_kwh = parser.getfloat('gas', 'm3_to_kwh')

        if parser.has_section('report'):
            if parser.has_option('report', 'billing_period_day'):
                config.billing_period_day = parse_billing_day(parser.get('report', 'billing_period_day'))
            if parser.has_option('report', 'usage_intervals'):
                config.usage_intervals = parse_usage_intervals(parser.get('report', 'usage_intervals'))
            if parser.has_option('report', 'usage_intervals_start_hour'):
                config.usage_intervals_start_hour = parse_hours(
                    parser.get('report', 'usage_intervals_start_hour'), "usage interval start hour"
                )

        # Optional logging configuration
        if parser.has_option('logging', 'level'):
            config.logging_level = parser.get('logging', 'level').upper()

    except ValueError as e:
        raise ConfigurationError(f"Invalid configuration: {e}")

    return config


def validate_config(config: Config, energy_type: str) -> None:
    """
    Check the settings needed for a report of the given energy type are present.

    Raises:
        ConfigurationError: If a required setting is missing
    """
    if energy_type == ELECTRICITY:
        required = {
            'electricity tariff_code': config.electricity_tariff_code,
            'electricity mpan': config.electricity_mpan,
            'electricity serial_number': config.electricity_serial_number,
        }
    else:
        required = {
            'gas tariff_code': config.gas_tariff_code,
            'gas mprn': config.gas_mprn,
            'gas serial_number': config.gas_serial_number,
        }

    missing = [name for name, value in required.items() if not value]
    if missing:
        raise ConfigurationError(f"Missing configuration: {', '.join(missing)}")


def apply_cli_overrides(config: Config, args: argparse.Namespace) -> None:
    """
    Apply command line argument overrides to configuration.

    Args:
        config: Configuration object to modify
        args: Parsed command line arguments
    """
    if args.billing_day is not None:
        logger.debug(f"Overriding billing period day with: {args.billing_day}")
        config.billing_period_day = args.billing_day

    if args.usage_interval:
        logger.debug(f"Using {len(args.usage_interval)} usage interval(s) from command line")
        config.usage_intervals = args.usage_interval

    if args.usage_start_hour is not None:
        config.usage_intervals_start_hour = args.usage_start_hour

    if args.log_level is not None:
        config.logging_level = args.log_level.upper()


def configure_logging(level: str) -> None:
    """
    Configure logging level for all modules.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level_map = {
        'DEBUG': logging.DEBUG,
        'INFO': logging.INFO,
        'WARNING': logging.WARNING,
        'ERROR': logging.ERROR,
        'CRITICAL': logging.CRITICAL,
    }

    log_level = level_map.get(level.upper(), logging.WARNING)

    logging.basicConfig(
        level=log_level,
        format='%(name)s - %(levelname)s - %(message)s',
        force=True,
    )

    for module in ('aggregation', 'billing', 'cli', 'octopus', 'pricing', 'report'):
        logging.getLogger(f'octopus_report.{module}').setLevel(log_level)


def build_report(config: Config, energy_type: str, day: date) -> Report:
    """Fetch data and build the report described by config."""
    options = config.report_options()

    with OctopusEnergyClient(timeout=config.timeout) as client:
        if energy_type == ELECTRICITY:
            assert config.electricity_tariff_code and config.electricity_mpan
            assert config.electricity_serial_number
            return get_electricity_report(
                client,
                config.product_code,
                config.electricity_tariff_code,
                config.electricity_mpan,
                config.electricity_serial_number,
                day,
                options,
            )

        assert config.gas_tariff_code and config.gas_mprn and config.gas_serial_number
        return get_gas_report(
            client,
            config.gas_product_code or config.product_code,
            config.gas_tariff_code,
            config.gas_mprn,
            config.gas_serial_number,
            config.m3_to_kwh,
            day,
            options,
        )


def create_parser() -> argparse.ArgumentParser:
    """Return the command line argument parser."""
    parser = argparse.ArgumentParser(
        prog='octopus-report',
        description='Energy report - daily usage and cost from Octopus Energy smart meter data'
    )
    parser.add_argument(
        'energy_type',
        choices=[ELECTRICITY, GAS],
        help='Energy type to report on'
    )
    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to configuration file (default: searches ., ~/.config, /etc)'
    )
    parser.add_argument(
        '--date',
        type=parse_date,
        default=None,
        help='Day to report on in YYYY-MM-DD format (default: yesterday)'
    )
    parser.add_argument(
        '--billing-day',
        type=parse_billing_day,
        default=None,
        help='Day of month the billing period starts; enables the billing period summary'
    )
    parser.add_argument(
        '--usage-interval',
        type=parse_hours,
        action='append',
        default=None,
        help='Appliance run length in hours to find the cheapest start for '
             '(can be specified multiple times, electricity only). Example: --usage-interval 2'
    )
    parser.add_argument(
        '--usage-start-hour',
        type=parse_hours,
        default=None,
        help='Earliest start hour considered for usage intervals (default: 0)'
    )
    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default=None,
        help='Logging level (overrides config file)'
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command line entry point."""
    args = create_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        apply_cli_overrides(config, args)
        validate_config(config, args.energy_type)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    configure_logging(config.logging_level)

    day = args.date or date.today() - timedelta(days=1)
    report = build_report(config, args.energy_type, day)

    print(json.dumps(report.to_dict(), indent=2))
    return 0 if report.is_data_available else 1


if __name__ == "__main__":
    exit(main())
