"""Tests for client metadata helpers."""

import pytest
from starlette.requests import Request

from kitgate.utils.request_meta import client_ip, device_from_user_agent, primary_language


def make_request(headers: dict[str, str] | None = None, client=("10.1.2.3", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/validate-code",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


def test_client_ip_prefers_first_forwarded_hop() -> None:
    request = make_request({"X-Forwarded-For": " 198.51.100.4 , 10.0.0.1", "X-Real-IP": "192.0.2.9"})

    assert client_ip(request) == "198.51.100.4"


def test_client_ip_falls_back_to_real_ip() -> None:
    assert client_ip(make_request({"X-Real-IP": "192.0.2.9"})) == "192.0.2.9"


def test_client_ip_falls_back_to_socket_peer() -> None:
    assert client_ip(make_request()) == "10.1.2.3"


def test_client_ip_unknown_without_any_source() -> None:
    assert client_ip(make_request(client=None)) == "unknown"


@pytest.mark.parametrize(
    "header, expected",
    [
        ("es-ES,es;q=0.9,en;q=0.8", "es"),
        ("EN-us", "en"),
        ("pt;q=0.5", "pt"),
        ("*", None),
        ("", None),
        (None, None),
    ],
)
def test_primary_language(header, expected) -> None:
    assert primary_language(header) == expected


@pytest.mark.parametrize(
    "user_agent, expected",
    [
        ("Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X)", "iOS"),
        ("Mozilla/5.0 (iPad; CPU OS 16_0 like Mac OS X)", "iOS"),
        ("Mozilla/5.0 (Linux; Android 14; Pixel 8)", "Android"),
        ("Mozilla/5.0 (Windows NT 10.0; Win64; x64)", "Windows"),
        ("Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0)", "macOS"),
        ("Mozilla/5.0 (X11; Linux x86_64)", "Linux"),
        ("curl/8.4.0", "Other"),
        (None, "Unknown"),
    ],
)
def test_device_from_user_agent(user_agent, expected) -> None:
    assert device_from_user_agent(user_agent) == expected
