"""
HTTP Basic authentication answering repository challenges.

Requests are always sent without credentials first. Only when the repository answers with a 401 carrying
a Basic challenge for the configured realm (or any realm, if none is configured), the request is repeated
exactly once with an `Authorization` header.
"""
import base64
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Generator, List, Optional

import httpx

logger = logging.getLogger(__name__)

AUTHORIZATION_HEADER = "Authorization"
CHALLENGE_HEADER = "WWW-Authenticate"
BASIC_SCHEME = "basic"

_token = r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+"
_separators_re = re.compile(r"[\s,]*")
_token_re = re.compile(_token)
_param_re = re.compile(r"(" + _token + r")\s*=\s*(\"(?:[^\"\\]|\\.)*\"|" + _token + r")")
_token68_re = re.compile(r"[ \t]+([A-Za-z0-9\-._~+/]+=*)[ \t]*(?=,|$)")
_quoted_pair_re = re.compile(r"\\(.)")


@dataclass(frozen=True)
class Challenge:
    """
    A single authentication challenge: the scheme and its parameters (names lower-cased).
    """

    scheme: str
    params: Dict[str, str] = field(default_factory=dict)

    @property
    def realm(self) -> Optional[str]:
        return self.params.get("realm")

    @property
    def is_basic(self) -> bool:
        return self.scheme.lower() == BASIC_SCHEME

    def __str__(self) -> str:
        if not self.params:
            return self.scheme
        params = ", ".join(f'{k}="{v}"' for k, v in self.params.items())
        return f"{self.scheme} {params}"


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        return _quoted_pair_re.sub(r"\1", value[1:-1])
    return value


def parse_challenge_header(value: str) -> List[Challenge]:
    """
    Parses a single `WWW-Authenticate` header value, which can hold several comma separated challenges.
    Parsing stops at the first malformed part; challenges found before it are returned.
    """
    challenges: List[Challenge] = []
    current: Optional[Challenge] = None
    pos = 0
    while True:
        pos = _separators_re.match(value, pos).end()  # type: ignore[union-attr]
        if pos >= len(value):
            break
        param = _param_re.match(value, pos)
        if param is not None and current is not None:
            current.params[param.group(1).lower()] = _unquote(param.group(2))
            pos = param.end()
            continue
        scheme = _token_re.match(value, pos)
        if scheme is None:
            logger.debug(f"Ignoring malformed rest of challenge header: '{value[pos:]}'")
            break
        current = Challenge(scheme.group())
        challenges.append(current)
        pos = scheme.end()
        token68 = _token68_re.match(value, pos)
        if token68 is not None:
            current.params["token68"] = token68.group(1)
            pos = token68.end()
    return challenges


def get_challenges(response: httpx.Response) -> List[Challenge]:
    """
    Returns all challenges of a 401 response, in the order the repository sent them.
    """
    if response.status_code != httpx.codes.UNAUTHORIZED:
        return []
    challenges: List[Challenge] = []
    for header_value in response.headers.get_list(CHALLENGE_HEADER):
        challenges.extend(parse_challenge_header(header_value))
    return challenges


def basic_authorization(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


class AuthState(Enum):
    INITIAL = "initial"
    RETRY = "retry"
    DONE = "done"


class ChallengeExchange:
    """
    The state of authentication for a single publish request. A new instance is created for every request,
    so nothing is shared between concurrent publishes.
    """

    def __init__(self, username: Optional[str], password: Optional[str], realm: Optional[str] = None):
        self._username = username
        self._password = password
        self._realm = realm
        self.state = AuthState.INITIAL

    def matches(self, challenge: Challenge) -> bool:
        return challenge.is_basic and (self._realm is None or self._realm == challenge.realm)

    def next_request(self, request: httpx.Request, response: httpx.Response) -> Optional[httpx.Request]:
        """
        Decides what to do after a response was received for the request.
        :param request: The request that was just sent.
        :param response: The response received for it.
        :return: The authenticated request to send next, or None if the response is final.
        """
        if self.state is AuthState.DONE:
            return None
        challenges = get_challenges(response)
        if not challenges:
            self.state = AuthState.DONE
            return None
        if AUTHORIZATION_HEADER in request.headers:
            logger.debug("Repository rejected the credentials.")
            self.state = AuthState.DONE
            return None
        if self._username is None or self._password is None:
            logger.debug("Repository requested authentication, but no credentials are configured.")
            self.state = AuthState.DONE
            return None
        if not any(self.matches(c) for c in challenges):
            logger.debug(
                f"None of the challenges [{'; '.join(str(c) for c in challenges)}] is a Basic challenge "
                f"for realm '{self._realm}', not retrying."
            )
            self.state = AuthState.DONE
            return None
        logger.debug("Repository requested Basic authentication, retrying with credentials.")
        self.state = AuthState.RETRY
        return self.authenticated(request)

    def authenticated(self, request: httpx.Request) -> httpx.Request:
        headers = request.headers.copy()
        headers[AUTHORIZATION_HEADER] = basic_authorization(self._username or "", self._password or "")
        return httpx.Request(request.method, request.url, headers=headers, content=request.content)


class BasicChallengeAuth(httpx.Auth):
    """
    httpx authenticator running a ChallengeExchange for every request sent through the client.
    """

    def __init__(self, username: str, password: str, realm: Optional[str] = None):
        self.username = username
        self._password = password
        self.realm = realm

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        exchange = ChallengeExchange(self.username, self._password, self.realm)
        response = yield request
        retry = exchange.next_request(request, response)
        if retry is not None:
            yield retry
