"""
Tests for the sensor API client.
"""

import pytest
import requests

from soil_alert.errors import FetchError
from soil_alert.sensor import SensorClient, parse_moisture

SENSOR_URL = "https://sensor.example/api/sensor-data/latest"


class FakeResponse:
    def __init__(self, payload=None, status_code=200, body_error=None):
        self.payload = payload
        self.status_code = status_code
        self.body_error = body_error

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self):
        if self.body_error is not None:
            raise self.body_error
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def get(self, url, timeout=None):
        self.requests.append((url, timeout))
        if self.error is not None:
            raise self.error
        return self.response


class TestParseMoisture:
    """Test extraction of the moisture field."""

    @pytest.mark.parametrize("value", [0, 27, 27.5, 100])
    def test_numeric_values(self, value):
        assert parse_moisture({"soilmoisture": value}) == value

    def test_numeric_string(self):
        assert parse_moisture({"soilmoisture": "27"}) == 27
        assert parse_moisture({"soilmoisture": "27.5"}) == 27.5

    @pytest.mark.parametrize("payload", [
        {},
        {"soilmoisture": None},
        {"soilmoisture": "dry"},
        {"soilmoisture": True},
        {"soilmoisture": [27]},
        {"soilmoisture": "nan"},
        {"soilmoisture": "inf"},
        {"soilmoisture": "-inf"},
        {"soilmoisture": float("nan")},
        {"soilmoisture": float("inf")},
        [27],
        "27",
    ])
    def test_malformed_payloads(self, payload):
        with pytest.raises(FetchError):
            parse_moisture(payload)


class TestSensorClient:
    """Test the HTTP fetch."""

    def test_fetch_latest_moisture(self):
        session = FakeSession(FakeResponse({"soilmoisture": 31, "temperature": 24}))
        client = SensorClient(SENSOR_URL, timeout=5, session=session)

        assert client.fetch_latest_moisture() == 31
        assert session.requests == [(SENSOR_URL, 5)]

    def test_network_error(self):
        session = FakeSession(error=requests.ConnectionError("connection refused"))
        client = SensorClient(SENSOR_URL, session=session)

        with pytest.raises(FetchError, match="connection refused"):
            client.fetch_latest_moisture()

    def test_timeout(self):
        session = FakeSession(error=requests.Timeout("read timed out"))
        client = SensorClient(SENSOR_URL, session=session)

        with pytest.raises(FetchError):
            client.fetch_latest_moisture()

    def test_error_status(self):
        session = FakeSession(FakeResponse({"error": "down"}, status_code=503))
        client = SensorClient(SENSOR_URL, session=session)

        with pytest.raises(FetchError):
            client.fetch_latest_moisture()

    def test_invalid_json(self):
        session = FakeSession(FakeResponse(body_error=ValueError("Expecting value")))
        client = SensorClient(SENSOR_URL, session=session)

        with pytest.raises(FetchError, match="not valid JSON"):
            client.fetch_latest_moisture()

    def test_missing_field(self):
        session = FakeSession(FakeResponse({"humidity": 60}))
        client = SensorClient(SENSOR_URL, session=session)

        with pytest.raises(FetchError):
            client.fetch_latest_moisture()

    def test_nan_body_is_rejected(self):
        # json.loads accepts the non-standard NaN token
        session = FakeSession(FakeResponse({"soilmoisture": float("nan")}))
        client = SensorClient(SENSOR_URL, session=session)

        with pytest.raises(FetchError):
            client.fetch_latest_moisture()
