import base64
from typing import List

import httpx
import pytest

from helm_build_suite.publish.auth import (
    AuthState,
    Challenge,
    ChallengeExchange,
    basic_authorization,
    get_challenges,
    parse_challenge_header,
)

_url = "https://charts.example.com/repo/mychart-1.0.0.tgz"


def _request(**headers: str) -> httpx.Request:
    return httpx.Request("PUT", _url, headers=headers, content=b"chart")


def _unauthorized(*challenges: str) -> httpx.Response:
    return httpx.Response(401, headers=[("WWW-Authenticate", c) for c in challenges])


@pytest.mark.parametrize(
    "header, expected",
    [
        ('Basic realm="charts"', [Challenge("Basic", {"realm": "charts"})]),
        ("basic realm=charts", [Challenge("basic", {"realm": "charts"})]),
        ('Basic realm="charts", charset="UTF-8"', [Challenge("Basic", {"realm": "charts", "charset": "UTF-8"})]),
        (
            'Bearer realm="https://auth.example.com/token",service="registry", Basic realm="charts"',
            [
                Challenge("Bearer", {"realm": "https://auth.example.com/token", "service": "registry"}),
                Challenge("Basic", {"realm": "charts"}),
            ],
        ),
        ('Basic REALM="quoted \\"name\\""', [Challenge("Basic", {"realm": 'quoted "name"'})]),
        ("Negotiate abc123==", [Challenge("Negotiate", {"token68": "abc123=="})]),
        ("Basic", [Challenge("Basic")]),
        ("", []),
    ],
)
def test_parse_challenge_header(header: str, expected: List[Challenge]) -> None:
    assert parse_challenge_header(header) == expected


def test_get_challenges_reads_all_headers() -> None:
    response = _unauthorized('Bearer realm="tokens"', 'Basic realm="charts"')

    challenges = get_challenges(response)

    assert [c.scheme for c in challenges] == ["Bearer", "Basic"]
    assert challenges[1].realm == "charts"
    assert challenges[1].is_basic
    assert not challenges[0].is_basic


def test_get_challenges_ignores_non_401_responses() -> None:
    response = httpx.Response(403, headers={"WWW-Authenticate": 'Basic realm="charts"'})

    assert get_challenges(response) == []


def test_basic_authorization_uses_utf8() -> None:
    assert basic_authorization("user", "secret") == "Basic dXNlcjpzZWNyZXQ="
    expected = base64.b64encode("zoë:pässword".encode("utf-8")).decode("ascii")
    assert basic_authorization("zoë", "pässword") == f"Basic {expected}"


def test_exchange_retries_once_with_credentials() -> None:
    exchange = ChallengeExchange("user", "secret")
    request = _request(**{"X-Trace": "1"})

    retry = exchange.next_request(request, _unauthorized('Basic realm="charts"'))

    assert retry is not None
    assert exchange.state is AuthState.RETRY
    assert retry.headers["Authorization"] == "Basic dXNlcjpzZWNyZXQ="
    assert retry.headers["X-Trace"] == "1"
    assert retry.method == "PUT"
    assert retry.url == request.url
    assert retry.content == b"chart"
    assert "Authorization" not in request.headers

    # the repository still refuses, no more retries
    assert exchange.next_request(retry, _unauthorized('Basic realm="charts"')) is None
    assert exchange.state is AuthState.DONE


def test_exchange_stops_on_success() -> None:
    exchange = ChallengeExchange("user", "secret")

    assert exchange.next_request(_request(), httpx.Response(201)) is None
    assert exchange.state is AuthState.DONE


def test_exchange_without_credentials_does_not_retry() -> None:
    exchange = ChallengeExchange(None, None)

    assert exchange.next_request(_request(), _unauthorized('Basic realm="charts"')) is None
    assert exchange.state is AuthState.DONE


def test_exchange_gives_up_when_request_already_authorized() -> None:
    exchange = ChallengeExchange("user", "secret")

    assert exchange.next_request(_request(Authorization="Basic xyz"), _unauthorized("Basic")) is None


@pytest.mark.parametrize(
    "realm, challenges, expected_retry",
    [
        (None, ['Basic realm="charts"'], True),
        ("charts", ['Basic realm="charts"'], True),
        ("charts", ['Basic realm="other"'], False),
        ("charts", ["Basic"], False),
        # realms are compared case-sensitively
        ("charts", ['Basic realm="Charts"'], False),
        # the scheme is compared case-insensitively
        ("charts", ['BASIC realm="charts"'], True),
        ("charts", ['Bearer realm="charts"'], False),
        ("charts", ['Bearer realm="charts"', 'Basic realm="charts"'], True),
        (None, ['Digest realm="charts", nonce="abc"'], False),
    ],
)
def test_exchange_matches_realm(realm: str, challenges: List[str], expected_retry: bool) -> None:
    exchange = ChallengeExchange("user", "secret", realm)

    retry = exchange.next_request(_request(), _unauthorized(*challenges))

    assert (retry is not None) is expected_retry
    assert exchange.state is (AuthState.RETRY if expected_retry else AuthState.DONE)
