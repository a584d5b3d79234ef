"""Build steps installing helm and running it against a chart."""
import argparse
import logging
import os
import platform
import re
from typing import Any, Dict, Optional, Set
from urllib.parse import urlsplit

import configargparse
import httpx

from helm_build_suite.build_steps.build_step import BuildStep
from helm_build_suite.build_steps.steps import (
    STEP_CREATE,
    STEP_INSTALL,
    STEP_LINT,
    STEP_PACKAGE,
    STEP_VERIFY,
)
from helm_build_suite.config import CHART_YAML, ChartConfig, ChartSettings, HelmInstallConfig, HelmInstallation
from helm_build_suite.errors import BuildError, ValidationError
from helm_build_suite.types import Context, StepType
from helm_build_suite.utils.config import get_config_value_by_cmd_line_option, parse_key_value_pairs, redact_url
from helm_build_suite.utils.environment import ProxySettings, SystemLookup, proxy_client_customizer
from helm_build_suite.utils.files import extract_tar_gz
from helm_build_suite.utils.platform import verify_architecture
from helm_build_suite.utils.processes import run_and_log

logger = logging.getLogger(__name__)

context_key_chart_full_path: str = "chart_full_path"
context_key_helm_version: str = "helm_version"

_default_build_dir = "build"
_download_timeout_seconds = 60.0
_packaged_line_prefix = "Successfully packaged chart and saved it to"
_version_regex = re.compile(r"(?:SemVer|Version):\"(v?[0-9][0-9A-Za-z.+\-]*)\"")


def resolve_installation(source: str, config: argparse.Namespace, system_os_name: str) -> HelmInstallation:
    build_dir = get_config_value_by_cmd_line_option(config, "--build-dir") or _default_build_dir
    return HelmInstallConfig(
        version=get_config_value_by_cmd_line_option(config, "--helm-version"),
        os_name=get_config_value_by_cmd_line_option(config, "--helm-os"),
        download_base_url=get_config_value_by_cmd_line_option(config, "--helm-download-base-url"),
        url=get_config_value_by_cmd_line_option(config, "--helm-download-url"),
        executable=get_config_value_by_cmd_line_option(config, "--helm-executable"),
    ).resolve(source, build_dir, system_os_name)


def resolve_chart(source: str, config: argparse.Namespace) -> ChartSettings:
    return ChartConfig(
        chart_dir=get_config_value_by_cmd_line_option(config, "--chart-dir") or ".",
        name=get_config_value_by_cmd_line_option(config, "--chart-name"),
        chart_version=get_config_value_by_cmd_line_option(config, "--chart-version"),
        app_version=get_config_value_by_cmd_line_option(config, "--app-version"),
        chart_version_from_git=bool(get_config_value_by_cmd_line_option(config, "--chart-version-from-git")),
        app_version_from_git=bool(get_config_value_by_cmd_line_option(config, "--app-version-from-git")),
        lint_strict=bool(get_config_value_by_cmd_line_option(config, "--lint-strict")),
        lint_values=parse_key_value_pairs("lint-set", get_config_value_by_cmd_line_option(config, "--lint-set"), "="),
        lint_values_files=list(get_config_value_by_cmd_line_option(config, "--lint-values-file") or []),
    ).resolve(source)


class HelmStep(BuildStep):
    """
    Base for steps that need the resolved helm installation.
    """

    def __init__(self, lookup: Optional[SystemLookup] = None, system_os_name: Optional[str] = None):
        self._lookup = lookup if lookup is not None else SystemLookup()
        self._system_os_name = system_os_name if system_os_name is not None else platform.system()
        self._installation: Optional[HelmInstallation] = None

    @property
    def installation(self) -> HelmInstallation:
        if self._installation is None:
            raise BuildError(self.name, "Helm installation settings are not resolved, pre-run was not executed.")
        return self._installation

    def pre_run(self, config: argparse.Namespace) -> None:
        self._installation = resolve_installation(self.name, config, self._system_os_name)

    def _run_helm(self, *args: str) -> str:
        """
        Runs helm with the given arguments and fails the step on a non-zero exit code.
        :return: The standard output of helm.
        """
        installation = self.installation
        run_res = run_and_log(
            installation.command(*args), source=self.name, env=installation.environment(self._lookup)
        )  # nosec, executable and args come from resolved config
        for line in run_res.stdout.splitlines():
            logger.info(line)
        if run_res.returncode != 0:
            logger.error(f"helm {args[0]} failed with exit code {run_res.returncode}")
            raise BuildError(self.name, f"'helm {args[0]}' failed with exit code {run_res.returncode}")
        return run_res.stdout


class HelmPlatformVerifier(HelmStep):
    """
    Ensures that helm is available for the operating system and architecture.
    """

    def __init__(
        self,
        lookup: Optional[SystemLookup] = None,
        system_os_name: Optional[str] = None,
        machine: Optional[str] = None,
    ):
        super().__init__(lookup, system_os_name)
        self._machine = machine if machine is not None else platform.machine()

    @property
    def steps_provided(self) -> Set[StepType]:
        return {STEP_VERIFY}

    def initialize_config(self, config_parser: configargparse.ArgParser) -> None:
        config_parser.add_argument(
            "--helm-version",
            required=False,
            help="Version of helm to download and use.",
        )
        config_parser.add_argument(
            "--helm-os",
            required=False,
            help="Operating system to download helm for. Detected if not set.",
        )
        config_parser.add_argument(
            "--helm-download-base-url",
            required=False,
            help="Base URL of the helm distribution archives.",
        )
        config_parser.add_argument(
            "--helm-download-url",
            required=False,
            help="Full URL of the helm archive. Overrides '--helm-download-base-url'.",
        )
        config_parser.add_argument(
            "--helm-executable",
            required=False,
            help="Use this helm executable instead of downloading one.",
        )

    def pre_run(self, config: argparse.Namespace) -> None:
        verify_architecture(self.name, self._machine)
        super().pre_run(config)
        if self.installation.is_preinstalled:
            self._assert_binary_present_in_path(self.installation.executable)

    def run(self, config: argparse.Namespace, context: Context) -> None:
        logger.info(
            f"Platform {self.installation.operating_system.filename_part}/{self._machine} is supported by helm."
        )


class HelmDownloader(HelmStep):
    """
    Downloads the helm distribution archive, unless it was downloaded already.
    """

    @property
    def steps_provided(self) -> Set[StepType]:
        return {STEP_INSTALL}

    def _client_options(self, url: str) -> Dict[str, Any]:
        options: Dict[str, Any] = {"follow_redirects": True, "timeout": _download_timeout_seconds}
        customize = proxy_client_customizer(ProxySettings.from_lookup(self._lookup), urlsplit(url).hostname or "")
        customize(options)
        return options

    def run(self, config: argparse.Namespace, context: Context) -> None:
        installation = self.installation
        if installation.is_preinstalled:
            logger.info(f"Using helm executable '{installation.executable}', download not needed.")
            return
        if os.path.isfile(installation.archive_file):
            logger.info(f"Helm archive '{installation.archive_file}' already downloaded.")
            return
        os.makedirs(installation.working_dir, exist_ok=True)
        partial_file = installation.archive_file + ".part"
        logger.info(f"Downloading helm from {redact_url(installation.url)}")
        try:
            with httpx.Client(**self._client_options(installation.url)) as client:
                with client.stream("GET", installation.url) as response:
                    response.raise_for_status()
                    with open(partial_file, "wb") as f:
                        for chunk in response.iter_bytes():
                            f.write(chunk)
        except httpx.HTTPError as e:
            if os.path.exists(partial_file):
                os.remove(partial_file)
            raise BuildError(self.name, f"Can't download helm from {installation.url}: {e}")
        os.replace(partial_file, installation.archive_file)
        logger.info(f"Helm archive saved to '{installation.archive_file}'.")


class HelmInstaller(HelmStep):
    """
    Extracts the downloaded helm archive.
    """

    @property
    def steps_provided(self) -> Set[StepType]:
        return {STEP_INSTALL}

    def run(self, config: argparse.Namespace, context: Context) -> None:
        installation = self.installation
        if installation.is_preinstalled:
            logger.info(f"Using helm executable '{installation.executable}', install not needed.")
            return
        if not os.path.isfile(installation.executable):
            if not os.path.isfile(installation.archive_file):
                raise BuildError(self.name, f"Helm archive '{installation.archive_file}' doesn't exist.")
            extract_tar_gz(self.name, installation.archive_file, installation.install_dir)
        if not os.path.isfile(installation.executable):
            raise BuildError(
                self.name, f"Helm executable '{installation.executable}' not found in the extracted archive."
            )
        logger.info(f"Helm installed as '{installation.executable}'.")


class HelmInitializer(HelmStep):
    """
    Initializes the local helm home. Only helm 2 needs it.
    """

    @property
    def steps_provided(self) -> Set[StepType]:
        return {STEP_INSTALL}

    def run(self, config: argparse.Namespace, context: Context) -> None:
        os.makedirs(self.installation.home_dir, exist_ok=True)
        if not self.installation.is_helm2:
            logger.info(f"Helm {self.installation.version} doesn't need initialization.")
            return
        self._run_helm("init", "--client-only")


class HelmVersionChecker(HelmStep):
    """
    Checks that the installed helm reports the requested version. A preinstalled helm only has to match the
    major version.
    """

    @property
    def steps_provided(self) -> Set[StepType]:
        return {STEP_INSTALL}

    @staticmethod
    def parse_version_output(output: str) -> Optional[str]:
        match = _version_regex.search(output)
        return None if match is None else match.group(1)

    def run(self, config: argparse.Namespace, context: Context) -> None:
        installation = self.installation
        output = self._run_helm("version", "--client")
        os.makedirs(os.path.dirname(installation.version_file) or ".", exist_ok=True)
        with open(installation.version_file, "w") as f:
            f.write(output)
        version = self.parse_version_output(output)
        if version is None:
            logger.warning("Could not identify installed Helm version.")
            raise BuildError(self.name, f"Expected to find version {installation.version}, but output was '{output}'")
        logger.info(f"Installed Helm Version: {version}")
        context[context_key_helm_version] = version
        if installation.is_preinstalled:
            # commands and helm home layout follow the major version of '--helm-version'
            major = installation.major_version
            self._assert_version_in_range("helm", version, f"{major}.0.0", f"{major + 1}.0.0")
            return
        if version.lstrip("v") != installation.version.lstrip("v"):
            raise BuildError(
                self.name, f"Expected to find version {installation.version}, but helm reports version {version}"
            )


class HelmChartCreator(HelmStep):
    """
    Creates a new chart with 'helm create'. Runs only if the 'create' step is requested explicitly,
    as it fails for existing charts.
    """

    _requested = False

    @property
    def steps_provided(self) -> Set[StepType]:
        return {STEP_CREATE}

    def initialize_config(self, config_parser: configargparse.ArgParser) -> None:
        config_parser.add_argument(
            "-c",
            "--chart-dir",
            required=False,
            default=".",
            help="Path to the Helm Chart to build.",
        )

    def pre_run(self, config: argparse.Namespace) -> None:
        self._requested = STEP_CREATE in config.steps
        if not self._requested:
            logger.info(f"Step '{STEP_CREATE}' was not requested explicitly, chart won't be created.")
            return
        super().pre_run(config)
        chart_yaml_path = os.path.join(config.chart_dir, CHART_YAML)
        if os.path.exists(chart_yaml_path):
            raise ValidationError(self.name, f"Cannot create chart when exists: '{chart_yaml_path}'")

    def run(self, config: argparse.Namespace, context: Context) -> None:
        if not self._requested:
            return
        logger.info(f"Creating chart in '{config.chart_dir}' with 'helm create'")
        self._run_helm("create", config.chart_dir)


class HelmChartLinter(HelmStep):
    """
    Validates the chart with 'helm lint'.
    """

    _chart: Optional[ChartSettings] = None

    @property
    def steps_provided(self) -> Set[StepType]:
        return {STEP_LINT}

    def initialize_config(self, config_parser: configargparse.ArgParser) -> None:
        config_parser.add_argument(
            "--lint-strict",
            required=False,
            action="store_true",
            help="Fail linting on warnings.",
        )
        config_parser.add_argument(
            "--lint-set",
            required=False,
            action="append",
            help="Value to set when linting, as 'key=value'. Can be used multiple times.",
        )
        config_parser.add_argument(
            "--lint-values-file",
            required=False,
            action="append",
            help="Values file to use when linting. Can be used multiple times.",
        )

    def pre_run(self, config: argparse.Namespace) -> None:
        super().pre_run(config)
        self._chart = resolve_chart(self.name, config)
        if not os.path.isfile(self._chart.chart_yaml_path):
            raise ValidationError(self.name, f"Can't find '{self._chart.chart_yaml_path}' file.")
        for values_file in self._chart.lint_values_files:
            if not os.path.isfile(values_file):
                raise ValidationError(self.name, f"Values file '{values_file}' doesn't exist.")

    def run(self, config: argparse.Namespace, context: Context) -> None:
        if self._chart is None:
            raise BuildError(self.name, "Chart settings are not resolved, pre-run was not executed.")
        args = ["lint"]
        if self._chart.lint_strict:
            args.append("--strict")
        for key, value in self._chart.lint_values:
            args.extend(["--set", f"{key}={value}"])
        for values_file in self._chart.lint_values_files:
            args.extend(["--values", values_file])
        args.append(self._chart.chart_dir)
        logger.info(f"Linting chart '{self._chart.name}' with 'helm lint'")
        self._run_helm(*args)


class HelmChartPackager(HelmStep):
    """
    Packages the chart with 'helm package' into the package directory.
    """

    _chart: Optional[ChartSettings] = None

    @property
    def steps_provided(self) -> Set[StepType]:
        return {STEP_PACKAGE}

    def initialize_config(self, config_parser: configargparse.ArgParser) -> None:
        config_parser.add_argument(
            "--chart-name",
            required=False,
            help=f"Name of the chart. Defaults to 'name' from {CHART_YAML}.",
        )
        config_parser.add_argument(
            "--chart-version",
            required=False,
            help=f"Version of the packaged chart. Defaults to 'version' from {CHART_YAML}.",
        )
        config_parser.add_argument(
            "--app-version",
            required=False,
            help=f"App version of the packaged chart. Defaults to 'appVersion' from {CHART_YAML}.",
        )
        config_parser.add_argument(
            "--chart-version-from-git",
            required=False,
            action="store_true",
            help="Use a tag and hash from git as the chart version, unless '--chart-version' is set.",
        )
        config_parser.add_argument(
            "--app-version-from-git",
            required=False,
            action="store_true",
            help="Use a tag and hash from git as the app version, unless '--app-version' is set.",
        )

    def pre_run(self, config: argparse.Namespace) -> None:
        super().pre_run(config)
        self._chart = resolve_chart(self.name, config)
        if not os.path.isfile(self._chart.chart_yaml_path):
            raise ValidationError(self.name, f"Can't find '{self._chart.chart_yaml_path}' file.")
        if not self._chart.chart_version:
            raise ValidationError(self.name, f"Can't find chart version in config or '{self._chart.chart_yaml_path}'.")

    def expected_package_path(self) -> str:
        if self._chart is None:
            raise BuildError(self.name, "Chart settings are not resolved, pre-run was not executed.")
        return os.path.abspath(os.path.join(self.installation.package_dir, self._chart.package_filename()))

    def run(self, config: argparse.Namespace, context: Context) -> None:
        chart = self._chart
        if chart is None or chart.chart_version is None:
            raise BuildError(self.name, "Chart settings are not resolved, pre-run was not executed.")
        expected_path = self.expected_package_path()
        os.makedirs(self.installation.package_dir, exist_ok=True)
        args = [
            "package",
            "--app-version",
            chart.app_version or chart.chart_version,
            "--version",
            chart.chart_version,
            "--destination",
            self.installation.package_dir,
        ]
        if self.installation.is_helm2:
            args.append("--save=false")
        args.append(chart.chart_dir)
        logger.info(f"Building chart '{chart.name}' with 'helm package'")
        output = self._run_helm(*args)
        for line in output.splitlines():
            if line.startswith(_packaged_line_prefix):
                reported_path = os.path.abspath(line.split(":", 1)[1].strip())
                if reported_path != expected_path:
                    raise BuildError(
                        self.name,
                        f"unexpected helm build result: path reported in output '{reported_path}' "
                        f"is not equal to '{expected_path}'",
                    )
        if not os.path.isfile(expected_path):
            raise BuildError(self.name, f"Packaged chart '{expected_path}' not found.")
        context[context_key_chart_full_path] = expected_path
