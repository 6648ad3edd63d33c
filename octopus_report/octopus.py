# SPDX-License-Identifier: MPL-2.0
"""
Octopus Energy API Client Module

This module handles querying tariff and consumption data from the Octopus Energy API.
It provides methods to fetch unit rates, standing charges and meter readings,
following the API's page-with-next-link pagination.
"""

import requests
from typing import Dict, Any, List, Optional
import logging

logger = logging.getLogger(__name__)

ELECTRICITY = 'electricity'
GAS = 'gas'

# Half-hourly slots in 31 days
DEFAULT_MAX_ITEMS = 2 * 24 * 31


class OctopusAPIError(Exception):
    """Custom exception for Octopus API client errors."""
    pass


class PricePoint:
    """
    Represents a single price point from the Octopus Energy API.

    Used for unit rates and standing charges alike.

    Attributes:
        value_exc_vat (float): Price excluding VAT in pence
        value_inc_vat (float): Price including VAT in pence
        valid_from (str): ISO 8601 timestamp when this rate starts
        valid_to (str|None): ISO 8601 timestamp when this rate ends
        payment_method (str|None): Payment method if applicable
    """

    def __init__(self, data: Dict[str, Any]):
        """Initialize from API response data."""
        self.value_exc_vat = data['value_exc_vat']
        self.value_inc_vat = data['value_inc_vat']
        self.valid_from = data['valid_from']
        self.valid_to = data.get('valid_to')
        self.payment_method = data.get('payment_method')

    def __repr__(self) -> str:
        return f"PricePoint(inc_vat={self.value_inc_vat}p, {self.valid_from} to {self.valid_to})"


class MeterReading:
    """
    Represents a single interval reading from a smart meter.

    Attributes:
        interval_start (str): ISO 8601 timestamp when the interval starts
        interval_end (str|None): ISO 8601 timestamp when the interval ends
        consumption (float): Energy used in the interval (kWh, or m3 for SMETS2 gas)
    """

    def __init__(self, data: Dict[str, Any]):
        """Initialize from API response data."""
        self.interval_start = data['interval_start']
        self.interval_end = data.get('interval_end')
        self.consumption = data['consumption']

    def __repr__(self) -> str:
        return f"MeterReading({self.consumption} at {self.interval_start})"


def readings_cover_date(readings: List[MeterReading], date_string: str) -> bool:
    """
    Heuristic check that the meter has reported data for roughly a given date.

    True iff there are at least 4 readings and the 4th one's interval_start
    contains date_string. Readings come latest first, so this only tells
    whether the meter has caught up to roughly that date; it is not an
    exact date match.

    Args:
        readings: Readings as returned by the consumption endpoint
        date_string: Date in YYYY-MM-DD format

    Returns:
        True if the 4th reading falls on the date, False otherwise
    """
    return len(readings) >= 4 and date_string in readings[3].interval_start


class OctopusEnergyClient:
    """
    Client for interacting with the Octopus Energy API to query tariffs and consumption.

    Attributes:
        base_url (str): The base URL of the Octopus Energy API
        timeout (int): Request timeout in seconds
        session (requests.Session): HTTP session for connection pooling
    """

    BASE_URL = "https://api.octopus.energy/v1"

    def __init__(self, timeout: int = 30, base_url: Optional[str] = None):
        """
        Initialize the Octopus Energy API client.

        Args:
            timeout: Request timeout in seconds (default: 30)
            base_url: Optional override of the API base URL
        """
        self.base_url = (base_url or self.BASE_URL).rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()

    @staticmethod
    def extract_product_code(tariff_code: str) -> str:
        """
        Extract product code from tariff code.

        Tariff codes follow the format: E-1R-PRODUCT-CODE-N
        For example: E-1R-AGILE-24-10-01-N -> AGILE-24-10-01

        Args:
            tariff_code: Full tariff code (e.g., 'E-1R-AGILE-24-10-01-N')

        Returns:
            Product code extracted from tariff (e.g., 'AGILE-24-10-01')

        Raises:
            ValueError: If tariff code format is invalid
        """
        parts = tariff_code.split('-')
        if len(parts) < 4:
            raise ValueError(f"Invalid tariff code format: {tariff_code}")

        # Skip first two parts (e.g., 'E', '1R') and last part (e.g., 'N')
        product_code = '-'.join(parts[2:-1])
        return product_code

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Fetch a URL and decode its JSON body.

        Raises:
            OctopusAPIError: On timeout, HTTP error, connection failure or invalid JSON
        """
        try:
            logger.debug(f"Fetching {url}")
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()

            data = response.json()
            if not isinstance(data, dict):
                raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
            return data

        except requests.exceptions.JSONDecodeError as e:
            error_msg = f"Invalid JSON response: {str(e)}"
            logger.error(error_msg)
            raise OctopusAPIError(error_msg)

        except requests.exceptions.Timeout:
            error_msg = f"Request to {url} timed out after {self.timeout} seconds"
            logger.error(error_msg)
            raise OctopusAPIError(error_msg)

        except requests.exceptions.HTTPError as e:
            error_msg = f"HTTP error occurred: {e.response.status_code} - {e.response.text}"
            logger.error(error_msg)
            raise OctopusAPIError(error_msg)

        except requests.exceptions.RequestException as e:
            error_msg = f"Request failed: {str(e)}"
            logger.error(error_msg)
            raise OctopusAPIError(error_msg)

        except ValueError as e:
            error_msg = f"Invalid JSON response: {str(e)}"
            logger.error(error_msg)
            raise OctopusAPIError(error_msg)

    def get_multiple_pages_data(
        self,
        url: str,
        max_items: int = DEFAULT_MAX_ITEMS,
        params: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """
        Request result pages one by one until max_items was read.

        Follows the 'next' link of each page. Once more than max_items results
        have been collected the list is truncated to max_items and no further
        page is requested.

        Args:
            url: URL of the first page
            max_items: Maximum number of results to return
            params: Query parameters for the first request only ('next' links
                    already carry their own query string)

        Returns:
            Raw result dictionaries in API order

        Raises:
            OctopusAPIError: If any page request fails
        """
        next_page_link: Optional[str] = url
        page_params = params
        results: List[Dict[str, Any]] = []

        while next_page_link:
            data = self._get_json(next_page_link, page_params)
            page_params = None

            try:
                results.extend(data['results'])
            except (KeyError, TypeError) as e:
                error_msg = f"Invalid JSON response or missing data: {str(e)}"
                logger.error(error_msg)
                raise OctopusAPIError(error_msg)

            next_page_link = data.get('next')

            if len(results) > max_items:
                results = results[:max_items]
                next_page_link = None

        logger.debug(f"Collected {len(results)} results from {url}")
        return results

    def _get_first_price(self, url: str) -> float:
        """Fetch the first page of a price resource and return its first inc-VAT value."""
        data = self._get_json(url)

        try:
            results = data['results']
            if not results:
                error_msg = f"No prices returned from {url}"
                logger.error(error_msg)
                raise OctopusAPIError(error_msg)
            value = results[0]['value_inc_vat']
        except (KeyError, TypeError) as e:
            error_msg = f"Invalid JSON response or missing data: {str(e)}"
            logger.error(error_msg)
            raise OctopusAPIError(error_msg)

        return float(value)

    def get_unit_rates(
        self,
        tariff_code: str,
        product_code: Optional[str] = None,
        period_from: Optional[str] = None,
        period_to: Optional[str] = None,
        max_items: int = DEFAULT_MAX_ITEMS
    ) -> List[PricePoint]:
        """
        Fetch electricity unit rates for a specific tariff.

        Args:
            tariff_code: Tariff code (e.g., 'E-1R-AGILE-24-10-01-N')
            product_code: Product code; derived from tariff_code if not provided
            period_from: Start of period in ISO 8601 format (e.g., '2025-12-01T00:00Z')
            period_to: End of period in ISO 8601 format (e.g., '2025-12-01T04:00Z')
            max_items: Maximum number of rates to collect across pages

        Returns:
            List of PricePoint objects sorted chronologically

        Raises:
            OctopusAPIError: If the request fails or returns an error status
            ValueError: If tariff code format is invalid
        """
        if not product_code:
            product_code = self.extract_product_code(tariff_code)

        url = f"{self.base_url}/products/{product_code}/electricity-tariffs/{tariff_code}/standard-unit-rates/"
        params = {
            'period_from': period_from,
            'period_to': period_to
        }

        results = self.get_multiple_pages_data(url, max_items, params)

        try:
            price_points = [PricePoint(result) for result in results]
        except (KeyError, TypeError) as e:
            error_msg = f"Invalid JSON response or missing data: {str(e)}"
            logger.error(error_msg)
            raise OctopusAPIError(error_msg)

        # API returns in reverse chronological order
        price_points.sort(key=lambda p: p.valid_from)

        logger.debug(f"Successfully retrieved {len(price_points)} price points")
        return price_points

    def get_electricity_rates_by_time(
        self,
        product_code: Optional[str],
        tariff_code: str,
        max_rates_count: int = DEFAULT_MAX_ITEMS
    ) -> Dict[str, float]:
        """
        Return electricity rates (price per kWh inc VAT) keyed by valid_from.

        Args:
            product_code: Product code; derived from tariff_code if None
            tariff_code: Electricity tariff code
            max_rates_count: Maximum number of half-hourly rates (default: 31 days)

        Returns:
            Dictionary mapping provider timestamp strings to prices
        """
        price_points = self.get_unit_rates(tariff_code, product_code, max_items=max_rates_count)
        return {p.valid_from: p.value_inc_vat for p in price_points}

    def get_gas_rate(self, product_code: str, tariff_code: str) -> float:
        """
        Return the current price per kWh of gas (inc VAT).

        Only the first page is read; the first result is the current rate.
        """
        url = f"{self.base_url}/products/{product_code}/gas-tariffs/{tariff_code}/standard-unit-rates/"
        return self._get_first_price(url)

    def get_standing_charge(self, product_code: str, tariff_code: str, energy_type: str) -> float:
        """
        Return the standing charge (fixed price per day, inc VAT).

        Args:
            product_code: Product code
            tariff_code: Tariff code for the energy type
            energy_type: 'electricity' or 'gas'

        Returns:
            Daily standing charge in pence
        """
        url = f"{self.base_url}/products/{product_code}/{energy_type}-tariffs/{tariff_code}/standing-charges/"
        return self._get_first_price(url)

    def get_readings(
        self,
        mpan: str,
        serial_number: str,
        energy_type: str,
        max_readings_count: int = DEFAULT_MAX_ITEMS,
        period_from: Optional[str] = None,
        period_to: Optional[str] = None
    ) -> List[MeterReading]:
        """
        Fetch interval meter readings, latest first.

        Args:
            mpan: Meter point number (MPAN for electricity, MPRN for gas)
            serial_number: Meter serial number
            energy_type: 'electricity' or 'gas'
            max_readings_count: Maximum number of readings (default: 31 days)
            period_from: Optional start of period in ISO 8601 format
            period_to: Optional end of period in ISO 8601 format

        Returns:
            List of MeterReading objects in API order

        Raises:
            OctopusAPIError: If the request fails or returns invalid data
        """
        url = f"{self.base_url}/{energy_type}-meter-points/{mpan}/meters/{serial_number}/consumption/"
        params = None
        if period_from or period_to:
            params = {
                'period_from': period_from,
                'period_to': period_to
            }

        results = self.get_multiple_pages_data(url, max_readings_count, params)

        try:
            readings = [MeterReading(result) for result in results]
        except (KeyError, TypeError) as e:
            error_msg = f"Invalid JSON response or missing data: {str(e)}"
            logger.error(error_msg)
            raise OctopusAPIError(error_msg)

        logger.debug(f"Successfully retrieved {len(readings)} {energy_type} readings")
        return readings

    def check_if_data_available(
        self,
        mpan: str,
        serial_number: str,
        energy_type: str,
        date_string: str
    ) -> bool:
        """
        Check whether the meter has reported data for the given date.

        Fetches at most 10 readings and applies readings_cover_date().

        Args:
            mpan: Meter point number
            serial_number: Meter serial number
            energy_type: 'electricity' or 'gas'
            date_string: Date in YYYY-MM-DD format

        Returns:
            True if data for the date appears to be available
        """
        readings = self.get_readings(mpan, serial_number, energy_type, 10)
        available = readings_cover_date(readings, date_string)
        logger.debug(f"{energy_type} data for {date_string} available: {available}")
        return available

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()
        logger.debug("Octopus Energy API client session closed")

    def __enter__(self) -> 'OctopusEnergyClient':
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit."""
        self.close()
