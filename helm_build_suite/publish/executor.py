"""Publishes a packaged chart archive to a chart repository."""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Type

import httpx

from helm_build_suite.errors import (
    AuthenticationError,
    ConfigError,
    HttpStatusError,
    PublishError,
    TransportError,
    UnsupportedChallengeError,
)
from helm_build_suite.publish.auth import AUTHORIZATION_HEADER, BasicChallengeAuth, get_challenges
from helm_build_suite.publish.repository import ArtifactFile, ClientOptions, RepositoryTarget
from helm_build_suite.publish.request import build_publish_request

logger = logging.getLogger(__name__)

TRANSPORT_ERROR_STATUS = -1
_max_detail_length = 512


class FailureKind(Enum):
    TRANSPORT = "transport"
    AUTHENTICATION = "authentication"
    UNSUPPORTED_CHALLENGE = "unsupported_challenge"
    HTTP = "http"


_failure_errors: Dict[FailureKind, Type[PublishError]] = {
    FailureKind.TRANSPORT: TransportError,
    FailureKind.AUTHENTICATION: AuthenticationError,
    FailureKind.UNSUPPORTED_CHALLENGE: UnsupportedChallengeError,
    FailureKind.HTTP: HttpStatusError,
}


@dataclass(frozen=True)
class PublishOutcome:
    """
    Final result of a publish. `failure` is None for a successful publish.
    """

    status_code: int
    message: str
    failure: Optional[FailureKind] = None

    @property
    def success(self) -> bool:
        return self.failure is None

    def raise_for_failure(self, source: str) -> None:
        """
        Raises the PublishError matching the kind of failure. Does nothing for a successful outcome.
        :param source: The name of the component reporting the failure.
        """
        if self.failure is None:
            return
        status = None if self.status_code == TRANSPORT_ERROR_STATUS else self.status_code
        raise _failure_errors[self.failure](source, self.message, status)


def _response_detail(response: httpx.Response) -> str:
    try:
        text = response.text.strip()
    except (httpx.ResponseNotRead, UnicodeDecodeError):
        return ""
    if len(text) > _max_detail_length:
        text = text[:_max_detail_length] + "..."
    return text


class ChartPublisher:
    """
    Uploads chart archives to a single repository target. One publish sends one request, and one more
    only if the repository asks for Basic credentials it can answer.
    """

    def __init__(self, target: RepositoryTarget, source: Optional[str] = None):
        self._target = target
        self._source = source or self.__class__.__name__

    @property
    def target(self) -> RepositoryTarget:
        return self._target

    def build_client_options(self) -> ClientOptions:
        """
        Prepares keyword options of the httpx.Client used for a publish: the authenticator first, then
        anything added by the target's client customizer.
        :return: The options dict.
        """
        options: ClientOptions = {}
        auth: Optional[BasicChallengeAuth] = None
        if self._target.has_credentials:
            auth = BasicChallengeAuth(
                self._target.username or "", self._target.password or "", self._target.auth_realm
            )
            options["auth"] = auth
        if self._target.client_customizer is not None:
            self._target.client_customizer(options)
            if auth is not None and options.get("auth") is not auth:
                raise ConfigError("repository", "HTTP client customization must not remove the authenticator.")
        return options

    def publish(self, artifact_path: str) -> PublishOutcome:
        """
        Publishes the chart archive.
        :param artifact_path: Path to the packaged chart.
        :return: The outcome of the publish. Raises ArtifactMissingError if the archive doesn't exist.
        """
        artifact = ArtifactFile.from_path(self._source, artifact_path)
        request = build_publish_request(self._target, artifact, artifact.read_bytes())
        logger.info(f"Publishing '{artifact.filename}' ({artifact.size} bytes) with {request.method} to {request.url}")
        options = self.build_client_options()
        try:
            with httpx.Client(**options) as client:
                response = client.send(request)
        except httpx.RequestError as e:
            logger.debug(f"Transport failure when publishing to {request.url}", exc_info=True)
            return PublishOutcome(
                TRANSPORT_ERROR_STATUS,
                f"Unable to publish helm chart to {request.url}: {e.__class__.__name__}: {e}",
                FailureKind.TRANSPORT,
            )
        return self._to_outcome(artifact, response)

    def _to_outcome(self, artifact: ArtifactFile, response: httpx.Response) -> PublishOutcome:
        status = response.status_code
        summary = f"code={status}, message={response.reason_phrase}, url={response.request.url}"
        if response.is_success:
            logger.info(f"Chart '{artifact.filename}' published: {summary}")
            return PublishOutcome(status, f"Published helm chart: {summary}")
        if status == httpx.codes.UNAUTHORIZED:
            challenges = get_challenges(response)
            offered = "; ".join(str(c) for c in challenges) or "none"
            if challenges and not any(c.is_basic for c in challenges):
                return PublishOutcome(
                    status,
                    f"Unsupported challenges: [{offered}] ({summary})",
                    FailureKind.UNSUPPORTED_CHALLENGE,
                )
            if AUTHORIZATION_HEADER in response.request.headers:
                reason = "credentials were rejected"
            elif not self._target.has_credentials:
                reason = "no credentials are configured"
            else:
                reason = f"no Basic challenge matches realm '{self._target.auth_realm}'"
            return PublishOutcome(
                status,
                f"Unable to publish helm chart, {reason}: {summary}, challenges: [{offered}]",
                FailureKind.AUTHENTICATION,
            )
        detail = _response_detail(response)
        message = f"Unable to publish helm chart: {summary}"
        if detail:
            message = f"{message}, response: {detail}"
        return PublishOutcome(status, message, FailureKind.HTTP)
