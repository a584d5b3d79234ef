from typing import Any, Dict

import pytest

from helm_build_suite.utils.environment import ProxySettings, SystemLookup, proxy_client_customizer


def test_system_lookup_is_case_insensitive() -> None:
    lookup = SystemLookup({"HTTP_PROXY": "http://proxy:3128", "Path": "/usr/bin"})

    assert lookup["http_proxy"] == "http://proxy:3128"
    assert lookup.get("PATH") == "/usr/bin"
    assert "path" in lookup
    assert lookup.get("missing") is None
    # the original keys are kept, so the lookup can be passed on as a process environment
    assert sorted(lookup) == ["HTTP_PROXY", "Path"]
    assert len(lookup) == 2


def test_system_lookup_empty_by_default() -> None:
    assert len(SystemLookup()) == 0


@pytest.mark.parametrize(
    "env, expected_url, expected_port",
    [
        ({}, None, None),
        ({"http_proxy": "http://proxy.local:3128"}, "http://proxy.local:3128", 3128),
        ({"HTTPS_PROXY": "https://proxy.local"}, "https://proxy.local:443", 443),
        ({"http_proxy": "http://proxy.local/some/path"}, "http://proxy.local:80", 80),
        # http_proxy takes precedence
        ({"http_proxy": "http://first:1", "https_proxy": "http://second:2"}, "http://first:1", 1),
        ({"http_proxy": "not a url"}, None, None),
        ({"http_proxy": "http://proxy.local:notaport"}, None, None),
    ],
)
def test_proxy_settings_from_lookup(env: Dict[str, str], expected_url: str, expected_port: int) -> None:
    settings = ProxySettings.from_lookup(SystemLookup(env))

    assert settings.url == expected_url
    assert settings.port == expected_port
    assert settings.is_configured == (expected_url is not None)


@pytest.mark.parametrize(
    "no_proxy, host, expected",
    [
        (None, "charts.example.com", False),
        ("", "charts.example.com", False),
        ("*", "charts.example.com", True),
        ("example.com", "charts.example.com", True),
        (".example.com", "charts.example.com", True),
        ("localhost, example.com", "EXAMPLE.com", True),
        ("ample.com", "charts.example.com", False),
        ("other.org", "charts.example.com", False),
    ],
)
def test_proxy_settings_bypasses(no_proxy: str, host: str, expected: bool) -> None:
    settings = ProxySettings("http://proxy.local:3128", no_proxy)

    assert settings.bypasses(host) is expected


def test_proxy_client_customizer_sets_proxy() -> None:
    settings = ProxySettings("http://proxy.local:3128", "localhost")
    options: Dict[str, Any] = {}

    proxy_client_customizer(settings, "charts.example.com")(options)

    assert options == {"trust_env": False, "proxy": "http://proxy.local:3128"}


def test_proxy_client_customizer_respects_no_proxy() -> None:
    settings = ProxySettings("http://proxy.local:3128", "example.com")
    options: Dict[str, Any] = {}

    proxy_client_customizer(settings, "charts.example.com")(options)

    assert options == {"trust_env": False}
