"""
Client for the remote soil moisture sensor API.

The API returns the latest reading as a JSON object, e.g.
{"soilmoisture": 27, ...}. Readings are fetched fresh on every call.
"""

import logging
import math
from typing import Optional, Union

import requests

from soil_alert.errors import FetchError

logger = logging.getLogger(__name__)

MOISTURE_FIELD = "soilmoisture"

Reading = Union[int, float]


def _coerce_number(value) -> Optional[Reading]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            pass
        try:
            return float(value)
        except ValueError:
            pass
    return None


def parse_moisture(payload) -> Reading:
    """
    Extract the moisture percentage from a sensor API payload.

    Raises:
        FetchError: Payload is not an object or the field is missing,
            non-numeric or not finite (NaN, inf)
    """
    if not isinstance(payload, dict):
        raise FetchError("Sensor payload is not a JSON object")

    value = _coerce_number(payload.get(MOISTURE_FIELD))
    if value is None or (isinstance(value, float) and not math.isfinite(value)):
        raise FetchError(f"Sensor payload has no numeric '{MOISTURE_FIELD}' field")
    return value


class SensorClient:
    """Fetches the latest soil moisture reading over HTTP."""

    def __init__(self, url: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_latest_moisture(self) -> Reading:
        """
        GET the sensor endpoint and return the moisture percentage.

        Raises:
            FetchError: Network failure, non-2xx status or malformed body
        """
        logger.debug(f"Fetching soil moisture from {self.url}")
        try:
            response = self.session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise FetchError(f"Sensor request failed: {e}") from e
        except ValueError as e:
            raise FetchError(f"Sensor response is not valid JSON: {e}") from e

        reading = parse_moisture(payload)
        logger.info(f"Current soil moisture: {reading}%")
        return reading
