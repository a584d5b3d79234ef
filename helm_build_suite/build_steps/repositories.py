import argparse
import logging
import os
from typing import Any, Dict, List, Optional, Set
from urllib.parse import urlsplit

import configargparse

from helm_build_suite.build_steps.helm import HelmStep, context_key_chart_full_path, resolve_chart
from helm_build_suite.build_steps.steps import STEP_PUBLISH
from helm_build_suite.errors import ValidationError
from helm_build_suite.publish import ChartPublisher, RepositoryConfig, RepositoryTarget, RepositoryVariant
from helm_build_suite.publish.repository import ClientCustomizer
from helm_build_suite.types import Context, StepType
from helm_build_suite.utils.config import parse_key_value_pairs
from helm_build_suite.utils.environment import ProxySettings, proxy_client_customizer

logger = logging.getLogger(__name__)

context_key_publish_outcome: str = "publish_outcome"


def timeout_client_customizer(timeout: float) -> ClientCustomizer:
    def customize(options: Dict[str, Any]) -> None:
        options["timeout"] = timeout

    return customize


class HelmChartPublisher(HelmStep):
    """
    Publishes the packaged chart to the configured chart repository.
    """

    _target: Optional[RepositoryTarget] = None
    _chart_path: Optional[str] = None

    @property
    def steps_provided(self) -> Set[StepType]:
        return {STEP_PUBLISH}

    def initialize_config(self, config_parser: configargparse.ArgParser) -> None:
        config_parser.add_argument(
            "--repository-url",
            required=False,
            help="URL of the chart repository to publish to. Publishing is disabled if not set. The host must be "
            "a valid DNS name or IP address, so names with '_' (like some docker compose service names) are "
            "rejected. Credentials go to '--repository-username' and '--repository-password', not the URL.",
        )
        config_parser.add_argument(
            "--repository-type",
            required=False,
            default=RepositoryVariant.GENERIC_HELM_REPO.value,
            choices=[v.value for v in RepositoryVariant],
            help="Type of the chart repository.",
        )
        config_parser.add_argument(
            "--repository-username",
            required=False,
            help="Username used if the repository requests authentication.",
        )
        config_parser.add_argument(
            "--repository-password",
            required=False,
            help="Password used if the repository requests authentication.",
        )
        config_parser.add_argument(
            "--repository-auth-realm",
            required=False,
            help="Answer only authentication challenges of this realm.",
        )
        config_parser.add_argument(
            "--repository-header",
            required=False,
            action="append",
            help="Extra header sent with publish requests, as 'Name: value'. Can be used multiple times.",
        )
        config_parser.add_argument(
            "--repository-timeout",
            required=False,
            type=float,
            help="Timeout in seconds for requests to the repository.",
        )

    def _client_customizers(self, config: argparse.Namespace) -> List[ClientCustomizer]:
        host = urlsplit(config.repository_url).hostname or ""
        customizers = [proxy_client_customizer(ProxySettings.from_lookup(self._lookup), host)]
        if config.repository_timeout is not None:
            customizers.append(timeout_client_customizer(config.repository_timeout))
        return customizers

    def pre_run(self, config: argparse.Namespace) -> None:
        if not config.repository_url:
            logger.info("Publishing is disabled, as no '--repository-url' is configured.")
            return
        super().pre_run(config)
        chart = resolve_chart(self.name, config)
        if not chart.chart_version:
            raise ValidationError(self.name, f"Can't find chart version in config or '{chart.chart_yaml_path}'.")
        self._chart_path = os.path.abspath(os.path.join(self.installation.package_dir, chart.package_filename()))
        self._target = RepositoryConfig(
            url=config.repository_url,
            repository_type=config.repository_type,
            username=config.repository_username,
            password=config.repository_password,
            auth_realm=config.repository_auth_realm,
            headers=parse_key_value_pairs("repository-header", config.repository_header, ":"),
            client_customizers=self._client_customizers(config),
        ).resolve()

    def run(self, config: argparse.Namespace, context: Context) -> None:
        if self._target is None:
            logger.info("Publishing is disabled, as no '--repository-url' is configured.")
            return
        chart_path = context.get(context_key_chart_full_path, self._chart_path)
        logger.info(f"Publishing file '{chart_path}' to {self._target.variant.value} repository {self._target.base_url}.")
        outcome = ChartPublisher(self._target, self.name).publish(chart_path)
        context[context_key_publish_outcome] = outcome
        if not outcome.success:
            logger.error(outcome.message)
        outcome.raise_for_failure(self.name)
