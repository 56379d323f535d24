import datetime as dt

import requests

from weatherdiary.config import ProviderConfig
from weatherdiary.errors import TransportError
from weatherdiary.models import Condition
from weatherdiary.sources.qweather import QWeatherSource

NOON = dt.datetime(2025, 5, 10, 12, 0)


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, responses):
        self.headers = {}
        self.calls = []
        self._responses = responses

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        response = self._responses[url]
        if isinstance(response, Exception):
            raise response
        return response


def _config():
    return ProviderConfig(
        name="qweather",
        base_url="https://devapi.qweather.com/v7",
        geo_base_url="https://geoapi.qweather.com/v2",
        key="test-key",
        timeout=8.0,
    )


def test_collect_qweather_fixture(load_fixture):
    session = FakeSession(
        {
            "https://devapi.qweather.com/v7/weather/now": FakeResponse(load_fixture("qweather_now.json")),
            "https://geoapi.qweather.com/v2/city/lookup": FakeResponse(load_fixture("qweather_city.json")),
        }
    )
    source = QWeatherSource(_config(), session, clock=lambda: NOON)

    result = source.fetch(39.9, 116.4)

    assert result.ok
    record = result.record
    assert record.condition == Condition.RAINY
    assert record.icon == "🌧️"
    assert record.description == "小雨"
    assert record.location == "东城, 北京市, 中国"
    assert record.temperature_c == "18"
    assert record.humidity == "88"
    assert record.wind_speed_kmh == "9"

    method, url, kwargs = session.calls[0]
    assert method == "GET"
    assert kwargs["params"] == {"location": "116.4,39.9", "key": "test-key"}
    assert kwargs["timeout"] == 8.0
    assert "User-Agent" in session.headers


def test_city_lookup_failure_keeps_weather(load_fixture):
    session = FakeSession(
        {
            "https://devapi.qweather.com/v7/weather/now": FakeResponse(load_fixture("qweather_now.json")),
            "https://geoapi.qweather.com/v2/city/lookup": requests.ConnectionError("geo down"),
        }
    )
    source = QWeatherSource(_config(), session, clock=lambda: NOON)

    record = source.fetch(39.9, 116.4).record

    assert record.location == "未知位置"
    assert record.condition == Condition.RAINY


def test_error_code_is_transport_error():
    session = FakeSession(
        {"https://devapi.qweather.com/v7/weather/now": FakeResponse({"code": "401"})}
    )
    source = QWeatherSource(_config(), session, clock=lambda: NOON)

    result = source.fetch(39.9, 116.4)

    assert isinstance(result.error, TransportError)
    assert result.error.kind == "transport"


def test_http_error_is_transport_error():
    session = FakeSession(
        {"https://devapi.qweather.com/v7/weather/now": FakeResponse({}, status_code=503)}
    )
    source = QWeatherSource(_config(), session, clock=lambda: NOON)

    result = source.fetch(39.9, 116.4)

    assert isinstance(result.error, TransportError)
    assert "503" in result.error.message
