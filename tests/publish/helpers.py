from typing import Callable, List

import httpx

from helm_build_suite.publish.repository import ClientOptions


class RecordingRepository:
    """
    Fake chart repository: records every received request and answers with the handler's response.
    """

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self._handler = handler
        self.requests: List[httpx.Request] = []

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    def customizer(self, options: ClientOptions) -> None:
        options["transport"] = httpx.MockTransport(self._handle)


def challenge(scheme_and_params: str) -> Callable[[httpx.Request], httpx.Response]:
    """
    Handler demanding authentication with the given challenge, accepting any request with credentials.
    """

    def handle(request: httpx.Request) -> httpx.Response:
        if "Authorization" in request.headers:
            return httpx.Response(201)
        return httpx.Response(401, headers={"WWW-Authenticate": scheme_and_params})

    return handle
