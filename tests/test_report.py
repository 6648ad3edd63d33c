#SPDX-License-Identifier: MPL-2.0
"""
Unit tests for electricity and gas report assembly.

The API client is mocked; no HTTP requests are made.
"""

import json
from datetime import date, timezone
from unittest.mock import Mock

import pytest

from octopus_report.octopus import MeterReading, OctopusAPIError, OctopusEnergyClient
from octopus_report.report import (
    Report,
    ReportOptions,
    ReportStatus,
    get_electricity_report,
    get_gas_report,
)

DAY = date(2025, 12, 1)
MPAN = '1200000000000'
MPRN = '3000000000'
SERIAL = '21L0000000'
GAS_SERIAL = 'G4P00000000000'


def create_reading(interval_start: str, consumption: float) -> MeterReading:
    """Helper to create a MeterReading for testing."""
    return MeterReading({'interval_start': interval_start, 'consumption': consumption})


@pytest.fixture
def client():
    """Mocked API client serving one day of readings and two days of rates."""
    client = Mock(spec=OctopusEnergyClient)
    client.extract_product_code.side_effect = OctopusEnergyClient.extract_product_code
    client.check_if_data_available.return_value = True
    client.get_readings.return_value = [
        create_reading('2025-12-01T00:30:00Z', 1.0),
        create_reading('2025-12-01T00:00:00Z', 1.0),
        create_reading('2025-11-30T12:00:00Z', 2.0),
    ]

    rates = {'2025-12-01T00:00:00Z': 10.0, '2025-12-01T00:30:00Z': 20.0}
    for slot in range(48):
        key = f"2025-12-02T{slot // 2:02d}:{30 * (slot % 2):02d}:00Z"
        rates[key] = 1.0 if slot in (4, 5) else 5.0
    client.get_electricity_rates_by_time.return_value = rates

    client.get_standing_charge.return_value = 50.0
    client.get_gas_rate.return_value = 6.0
    return client


class TestReport:
    """Test the report result type."""

    def test_unavailable(self):
        """Test an unavailable report has no error."""
        report = Report.unavailable('electricity', DAY)

        assert report.status is ReportStatus.UNAVAILABLE
        assert not report.is_data_available
        assert report.error is None
        assert report.to_dict() == {'is_data_available': False}

    def test_failed(self):
        """Test a failed report keeps the raw error."""
        error = OctopusAPIError("Request failed: boom")
        report = Report.failed('gas', DAY, error)

        assert report.status is ReportStatus.ERROR
        assert not report.is_data_available
        assert report.error is error
        assert report.to_dict() == {'is_data_available': False, 'error': 'Request failed: boom'}


class TestElectricityReport:
    """Test electricity report assembly."""

    def test_full_report(self, client):
        """Test a report with billing period and best consumption times."""
        options = ReportOptions(billing_period_day=1, usage_intervals=[1])

        report = get_electricity_report(
            client, 'AGILE-24-10-01', 'E-1R-AGILE-24-10-01-N', MPAN, SERIAL, DAY,
            options, tz=timezone.utc, today=date(2025, 12, 3)
        )

        assert report.status is ReportStatus.AVAILABLE
        assert report.is_data_available
        assert report.error is None
        assert report.date == DAY
        assert report.kwh == pytest.approx(2.0)
        assert report.kwh_avg == pytest.approx(2.0)
        assert report.standing_charge == 50.0
        assert report.price == pytest.approx(30.0)
        assert report.rate is None
        assert report.rates is client.get_electricity_rates_by_time.return_value

        # Searched in the next day's rates
        assert report.best_consumption_times == {1: 2.0}

        assert report.billing_period is not None
        assert report.billing_period.billing_start_date == date(2025, 12, 1)
        # 2025-12-01: 30p + 50p, 2025-12-02: no usage + 50p
        assert report.billing_period.price == pytest.approx(130.0)
        assert report.billing_period.kwh == pytest.approx(2.0)

        client.check_if_data_available.assert_called_once_with(MPAN, SERIAL, 'electricity', '2025-12-01')
        client.get_standing_charge.assert_called_once_with(
            'AGILE-24-10-01', 'E-1R-AGILE-24-10-01-N', 'electricity'
        )

    def test_optional_sections_omitted(self, client):
        """Test billing period and best times are only built when requested."""
        report = get_electricity_report(
            client, 'AGILE-24-10-01', 'E-1R-AGILE-24-10-01-N', MPAN, SERIAL, DAY, tz=timezone.utc
        )

        assert report.is_data_available
        assert report.billing_period is None
        assert report.best_consumption_times is None
        assert 'billing_period' not in report.to_dict()
        assert 'best_consumption_times' not in report.to_dict()

    def test_product_code_derived_from_tariff(self, client):
        """Test a missing product code is taken from the tariff code."""
        get_electricity_report(client, None, 'E-1R-AGILE-24-10-01-N', MPAN, SERIAL, DAY, tz=timezone.utc)

        client.get_electricity_rates_by_time.assert_called_once_with('AGILE-24-10-01', 'E-1R-AGILE-24-10-01-N')

    def test_unavailable_stops_fetching(self, client):
        """Test no further requests are made when data is not available."""
        client.check_if_data_available.return_value = False

        report = get_electricity_report(
            client, 'AGILE-24-10-01', 'E-1R-AGILE-24-10-01-N', MPAN, SERIAL, DAY
        )

        assert report.status is ReportStatus.UNAVAILABLE
        assert report.error is None
        client.get_readings.assert_not_called()
        client.get_electricity_rates_by_time.assert_not_called()

    def test_error_is_caught(self, client):
        """Test a failing request gives an error report without partial results."""
        error = OctopusAPIError("HTTP error occurred: 500 - Internal Server Error")
        client.get_electricity_rates_by_time.side_effect = error

        report = get_electricity_report(
            client, 'AGILE-24-10-01', 'E-1R-AGILE-24-10-01-N', MPAN, SERIAL, DAY
        )

        assert report.status is ReportStatus.ERROR
        assert report.error is error
        assert report.kwh is None
        assert report.price is None

    def test_availability_check_error_is_caught(self, client):
        """Test a failure during the availability check is an error, not unavailable."""
        client.check_if_data_available.side_effect = OctopusAPIError("Request failed: timeout")

        report = get_electricity_report(
            client, 'AGILE-24-10-01', 'E-1R-AGILE-24-10-01-N', MPAN, SERIAL, DAY
        )

        assert report.status is ReportStatus.ERROR

    def test_to_dict_is_json_serializable(self, client):
        """Test the report dictionary can be dumped as JSON."""
        options = ReportOptions(billing_period_day=1, usage_intervals=[1, 2.5])

        report = get_electricity_report(
            client, 'AGILE-24-10-01', 'E-1R-AGILE-24-10-01-N', MPAN, SERIAL, DAY,
            options, tz=timezone.utc, today=date(2025, 12, 3)
        )
        data = json.loads(json.dumps(report.to_dict()))

        assert data['is_data_available'] is True
        assert data['energy_type'] == 'electricity'
        assert data['date'] == '2025-12-01'
        assert data['best_consumption_times'] == {'1': 2.0, '2.5': 0.5}
        assert data['billing_period']['billing_start_date'] == '2025-12-01'
        assert data['rates']['2025-12-01T00:00:00Z'] == 10.0


class TestGasReport:
    """Test gas report assembly."""

    @pytest.fixture(autouse=True)
    def gas_readings(self, client):
        client.get_readings.return_value = [
            create_reading('2025-12-01T00:30:00Z', 1.0),
            create_reading('2025-12-01T00:00:00Z', 1.0),
            create_reading('2025-11-30T12:00:00Z', 4.0),
        ]

    def test_full_report(self, client):
        """Test usage is converted to kWh and priced at the gas rate."""
        options = ReportOptions(billing_period_day=1)

        report = get_gas_report(
            client, 'VAR-22-11-01', 'G-1R-VAR-22-11-01-N', MPRN, GAS_SERIAL, 10.0, DAY,
            options, today=date(2025, 12, 2)
        )

        assert report.status is ReportStatus.AVAILABLE
        assert report.kwh == pytest.approx(20.0)
        assert report.kwh_avg == pytest.approx(30.0)
        assert report.rate == 6.0
        assert report.rates is None
        assert report.price == pytest.approx(120.0)
        assert report.billing_period is not None
        assert report.billing_period.kwh == pytest.approx(20.0)
        assert report.billing_period.price == pytest.approx(170.0)

        client.check_if_data_available.assert_called_once_with(MPRN, GAS_SERIAL, 'gas', '2025-12-01')
        client.get_gas_rate.assert_called_once_with('VAR-22-11-01', 'G-1R-VAR-22-11-01-N')
        client.get_standing_charge.assert_called_once_with('VAR-22-11-01', 'G-1R-VAR-22-11-01-N', 'gas')

    def test_usage_intervals_ignored(self, client):
        """Test gas reports never include best consumption times."""
        options = ReportOptions(usage_intervals=[1])

        report = get_gas_report(
            client, 'VAR-22-11-01', 'G-1R-VAR-22-11-01-N', MPRN, GAS_SERIAL, 10.0, DAY, options
        )

        assert report.best_consumption_times is None
        client.get_electricity_rates_by_time.assert_not_called()

    def test_day_without_usage(self, client):
        """Test a day missing from the readings has no usage or price."""
        report = get_gas_report(
            client, 'VAR-22-11-01', 'G-1R-VAR-22-11-01-N', MPRN, GAS_SERIAL, 10.0, date(2025, 11, 29)
        )

        assert report.is_data_available
        assert report.kwh is None
        assert report.price is None

    def test_unavailable(self, client):
        """Test the unavailable outcome for gas."""
        client.check_if_data_available.return_value = False

        report = get_gas_report(
            client, 'VAR-22-11-01', 'G-1R-VAR-22-11-01-N', MPRN, GAS_SERIAL, 10.0, DAY
        )

        assert report.to_dict() == {'is_data_available': False}
        client.get_gas_rate.assert_not_called()

    def test_error_is_caught(self, client):
        """Test a failing gas rate request gives an error report."""
        client.get_gas_rate.side_effect = OctopusAPIError("No prices returned")

        report = get_gas_report(
            client, None, 'G-1R-VAR-22-11-01-N', MPRN, GAS_SERIAL, 10.0, DAY
        )

        assert report.status is ReportStatus.ERROR
        assert report.to_dict() == {'is_data_available': False, 'error': 'No prices returned'}
        client.get_standing_charge.assert_called_once_with('VAR-22-11-01', 'G-1R-VAR-22-11-01-N', 'gas')
