import pytest
import requests

from core.config import _reset_settings_cache_for_tests
from providers.mackolik.exceptions import RateLimitError, TokenError, TransientAPIError
from providers.mackolik.http_client import MATCHES_API_URL, TOKEN_URL, MackolikHttpClient


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, headers=None, invalid_json=False):
        self.status_code = status_code
        self._json_data = json_data or {}
        self._invalid_json = invalid_json
        self.headers = headers or {}
        self.text = ""

    def json(self):
        if self._invalid_json:
            raise ValueError("no json")
        return self._json_data


def build_sequence(responses, calls=None):
    it = iter(responses)

    def _get(session, url, params=None, headers=None, timeout=None):
        if calls is not None:
            calls.append({"url": url, "params": params, "headers": headers})
        item = next(it)
        if isinstance(item, Exception):
            raise item
        return item

    return _get


@pytest.fixture(autouse=True)
def env(monkeypatch):
    monkeypatch.setenv("MACKOLIK_MAX_ATTEMPTS", "3")
    monkeypatch.setenv("MACKOLIK_BACKOFF_JITTER", "0")
    _reset_settings_cache_for_tests()
    sleeps = []
    monkeypatch.setattr("providers.mackolik.http_client.time.sleep", sleeps.append)
    yield sleeps
    _reset_settings_cache_for_tests()


def _patch(monkeypatch, responses, calls=None):
    monkeypatch.setattr(
        "providers.mackolik.http_client.requests.Session.get",
        build_sequence(responses, calls),
    )


def test_get_json_success_no_retry(monkeypatch):
    _patch(monkeypatch, [FakeResponse(200, {"ok": True})])
    client = MackolikHttpClient()
    assert client.get_json(MATCHES_API_URL) == {"ok": True}
    stats = client.get_stats()
    assert stats["attempts"] == 1
    assert stats["retries"] == 0
    assert stats["last_status"] == 200


def test_retry_on_5xx_then_success(monkeypatch, env):
    _patch(monkeypatch, [FakeResponse(503), FakeResponse(200, {"ok": 1})])
    client = MackolikHttpClient()
    assert client.get_json(MATCHES_API_URL) == {"ok": 1}
    assert client.get_stats()["retries"] == 1
    # backoff base 0.5 senza jitter
    assert env == [0.5]


def test_network_error_exhausted(monkeypatch):
    _patch(monkeypatch, [requests.ConnectionError("down")] * 3)
    client = MackolikHttpClient()
    with pytest.raises(TransientAPIError):
        client.get_json(MATCHES_API_URL)
    assert client.get_stats()["attempts"] == 3
    assert client.get_stats()["last_status"] is None


def test_rate_limit_honours_retry_after(monkeypatch, env):
    _patch(
        monkeypatch,
        [FakeResponse(429, headers={"Retry-After": "4"}), FakeResponse(200, {"ok": 1})],
    )
    client = MackolikHttpClient()
    client.get_json(MATCHES_API_URL)
    assert env == [4.0]


def test_rate_limit_exhausted(monkeypatch):
    monkeypatch.setenv("MACKOLIK_MAX_ATTEMPTS", "2")
    _reset_settings_cache_for_tests()
    _patch(monkeypatch, [FakeResponse(429), FakeResponse(429)])
    client = MackolikHttpClient()
    with pytest.raises(RateLimitError):
        client.get_json(MATCHES_API_URL)
    stats = client.get_stats()
    assert stats["attempts"] == 2
    assert stats["last_status"] == 429


def test_client_error_not_retried(monkeypatch):
    _patch(monkeypatch, [FakeResponse(404)])
    client = MackolikHttpClient()
    with pytest.raises(ValueError):
        client.get_json(MATCHES_API_URL)
    assert client.get_stats()["attempts"] == 1


def test_invalid_json_raises_runtime_error(monkeypatch):
    _patch(monkeypatch, [FakeResponse(200, invalid_json=True)])
    with pytest.raises(RuntimeError):
        MackolikHttpClient().get_json(MATCHES_API_URL)


def test_api_get_sends_cached_token(monkeypatch):
    calls = []
    _patch(
        monkeypatch,
        [
            FakeResponse(200, {"data": {"token": "abc"}}),
            FakeResponse(200, {"data": {}}),
            FakeResponse(200, {"data": {}}),
        ],
        calls,
    )
    client = MackolikHttpClient()
    client.api_get(MATCHES_API_URL, params={"date": "2024-05-25"})
    client.api_get(MATCHES_API_URL, params={"date": "2024-05-26"})

    assert [c["url"] for c in calls] == [TOKEN_URL, MATCHES_API_URL, MATCHES_API_URL]
    assert calls[0]["headers"] == {"Host": "www.mackolik.com"}
    assert calls[1]["headers"] == {"X-RequestToken": "abc"}
    assert calls[2]["params"] == {"date": "2024-05-26"}


def test_missing_token_raises(monkeypatch):
    _patch(monkeypatch, [FakeResponse(200, {"data": {}})])
    with pytest.raises(TokenError):
        MackolikHttpClient().get_token()


def test_token_request_failure_raises_token_error(monkeypatch):
    _patch(monkeypatch, [FakeResponse(403)])
    with pytest.raises(TokenError):
        MackolikHttpClient().get_token()


@pytest.mark.parametrize("status", [401, 403])
def test_expired_token_refreshed_once(monkeypatch, status):
    calls = []
    _patch(
        monkeypatch,
        [
            FakeResponse(200, {"data": {"token": "old"}}),
            FakeResponse(status),
            FakeResponse(200, {"data": {"token": "new"}}),
            FakeResponse(200, {"data": {"ok": True}}),
        ],
        calls,
    )
    client = MackolikHttpClient()
    assert client.api_get(MATCHES_API_URL) == {"data": {"ok": True}}
    assert [c["url"] for c in calls] == [TOKEN_URL, MATCHES_API_URL, TOKEN_URL, MATCHES_API_URL]
    assert calls[1]["headers"] == {"X-RequestToken": "old"}
    assert calls[3]["headers"] == {"X-RequestToken": "new"}
    assert client.get_token() == "new"


def test_rejected_after_refresh_raises(monkeypatch):
    _patch(
        monkeypatch,
        [
            FakeResponse(200, {"data": {"token": "old"}}),
            FakeResponse(401),
            FakeResponse(200, {"data": {"token": "new"}}),
            FakeResponse(401),
        ],
    )
    with pytest.raises(ValueError):
        MackolikHttpClient().api_get(MATCHES_API_URL)


def test_other_client_errors_do_not_refresh_token(monkeypatch):
    calls = []
    _patch(monkeypatch, [FakeResponse(200, {"data": {"token": "abc"}}), FakeResponse(404)], calls)
    with pytest.raises(ValueError):
        MackolikHttpClient().api_get(MATCHES_API_URL)
    assert len(calls) == 2
