from __future__ import annotations

import httpx
import pytest

from fuuka_harvester.engine.fetcher import (
    DEFAULT_RETRY_AFTER,
    Fetcher,
    MalformedPayloadError,
    TransportError,
    parse_retry_after,
)


def _response(status: int, *, headers: dict | None = None, json: object = None, text: str | None = None):
    request = httpx.Request("GET", "https://archive.example.org/_/api/chan/search/")
    if json is not None:
        return httpx.Response(status, headers=headers, json=json, request=request)
    return httpx.Response(status, headers=headers, text=text or "", request=request)


class _Responder:
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls: list[tuple[str, str, dict]] = []

    def __call__(self, method, path, **kwargs):
        self.calls.append((method, path, kwargs))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def fetcher(sample_global_config, sleep_recorder):
    instance = Fetcher(sample_global_config, sleep=sleep_recorder)
    yield instance
    instance.close()


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("7", 7),
        (" 12 ", 12),
        ("0", 0),
        (None, DEFAULT_RETRY_AFTER),
        ("soon", DEFAULT_RETRY_AFTER),
        ("-3", DEFAULT_RETRY_AFTER),
        ("²", DEFAULT_RETRY_AFTER),
        ("1.5", DEFAULT_RETRY_AFTER),
    ],
)
def test_parse_retry_after(value, expected) -> None:
    assert parse_retry_after(value) == expected


def test_rate_limit_waits_then_retries_same_request(fetcher, sleep_recorder, monkeypatch) -> None:
    responder = _Responder(
        _response(429, headers={"Retry-After": "7"}),
        _response(200, json={"0": {"posts": []}}),
    )
    monkeypatch.setattr(fetcher._client, "request", responder)

    response = fetcher.get("/_/api/chan/search/", params={"username": "Bob", "page": "1"})

    assert response.status_code == 200
    assert sleep_recorder.calls == [7]
    assert fetcher.rate_limit_waits == 1
    assert len(responder.calls) == 2
    assert responder.calls[0] == responder.calls[1]


@pytest.mark.parametrize(
    "headers",
    [None, {"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"}, {"Retry-After": "²".encode("latin-1")}],
)
def test_rate_limit_without_usable_header_waits_default(fetcher, sleep_recorder, monkeypatch, headers) -> None:
    responder = _Responder(_response(429, headers=headers), _response(200, text="ok"))
    monkeypatch.setattr(fetcher._client, "request", responder)

    fetcher.get("/x/search/username/Bob/page/1/")

    assert sleep_recorder.calls == [DEFAULT_RETRY_AFTER]


def test_repeated_rate_limits_do_not_count_as_failures(fetcher, sleep_recorder, monkeypatch) -> None:
    limited = [_response(429, headers={"Retry-After": "1"}) for _ in range(6)]
    responder = _Responder(*limited, _response(200, text="ok"))
    monkeypatch.setattr(fetcher._client, "request", responder)

    response = fetcher.get("/")

    assert response.text == "ok"
    assert fetcher.rate_limit_waits == 6
    assert sleep_recorder.calls == [1] * 6


def test_server_error_raises_transport_error(fetcher, monkeypatch) -> None:
    monkeypatch.setattr(fetcher._client, "request", _Responder(_response(503)))

    with pytest.raises(TransportError) as excinfo:
        fetcher.get("/")

    assert excinfo.value.status_code == 503
    assert "HTTP 503" in str(excinfo.value)


def test_network_failure_has_no_status(fetcher, monkeypatch) -> None:
    request = httpx.Request("GET", "https://archive.example.org/")
    monkeypatch.setattr(
        fetcher._client, "request", _Responder(httpx.ConnectError("connection refused", request=request))
    )

    with pytest.raises(TransportError) as excinfo:
        fetcher.get("/")

    assert excinfo.value.status_code is None
    assert "connection refused" in str(excinfo.value)


def test_invalid_json_body_is_malformed(fetcher, monkeypatch) -> None:
    monkeypatch.setattr(fetcher._client, "request", _Responder(_response(200, text="<html>")))

    response = fetcher.get("/")

    with pytest.raises(MalformedPayloadError):
        response.json()


def test_client_carries_session_settings(sample_global_config) -> None:
    config = sample_global_config.model_copy(update={"cookies": {"session": "abc"}})
    with Fetcher(config) as instance:
        assert instance._client.headers["User-Agent"] == config.user_agent
        assert instance._client.cookies.get("session") == "abc"
        assert str(instance._client.base_url).startswith("https://archive.example.org")
