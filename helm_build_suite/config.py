"""
Helm installation and chart settings.

Settings are collected into *Config objects with every field optional, then resolved once into immutable
objects, computing each default from the already resolved values.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

import yaml

from helm_build_suite.errors import ValidationError
from helm_build_suite.utils import git as git_utils
from helm_build_suite.utils.config import parse_version
from helm_build_suite.utils.platform import OperatingSystem

logger = logging.getLogger(__name__)

DEFAULT_HELM_VERSION = "v3.14.4"
DEFAULT_DOWNLOAD_BASE_URL = "https://get.helm.sh"
CHART_YAML = "Chart.yaml"

_chart_yaml_name_key = "name"
_chart_yaml_chart_version_key = "version"
_chart_yaml_app_version_key = "appVersion"


@dataclass(frozen=True)
class HelmInstallation:
    version: str
    operating_system: OperatingSystem
    archive_filename: str
    url: str
    working_dir: str
    archive_file: str
    home_dir: str
    package_dir: str
    install_dir: str
    version_file: str
    executable: str
    is_preinstalled: bool = False

    @property
    def major_version(self) -> int:
        return parse_version(self.version).major

    @property
    def is_helm2(self) -> bool:
        return self.major_version < 3

    def command(self, *args: str) -> List[str]:
        """
        Builds a helm command line. Helm 2 gets its home directory as an argument.
        """
        cmd = [self.executable]
        if self.is_helm2:
            cmd.extend(["--home", self.home_dir])
        cmd.extend(args)
        return cmd

    def environment(self, base: Mapping[str, str]) -> Dict[str, str]:
        """
        Returns the environment for running helm. Helm 3 keeps its cache, config and data below the home dir.
        """
        env = dict(base)
        if not self.is_helm2:
            env["HELM_CACHE_HOME"] = os.path.join(self.home_dir, "cache")
            env["HELM_CONFIG_HOME"] = os.path.join(self.home_dir, "config")
            env["HELM_DATA_HOME"] = os.path.join(self.home_dir, "data")
        return env


@dataclass
class HelmInstallConfig:
    version: Optional[str] = None
    os_name: Optional[str] = None
    download_base_url: Optional[str] = None
    url: Optional[str] = None
    working_dir: Optional[str] = None
    executable: Optional[str] = None

    def resolve(self, source: str, build_dir: str, system_os_name: str) -> HelmInstallation:
        """
        Resolves the installation settings.
        :param source: The name of the component resolving (for clear exception source).
        :param build_dir: Directory where build outputs are stored.
        :param system_os_name: Name of the current operating system, used if no OS is configured.
        :return: The resolved HelmInstallation.
        """
        version = self.version or DEFAULT_HELM_VERSION
        try:
            parse_version(version)
        except ValueError:
            raise ValidationError(source, f"Helm version '{version}' is not a correct semver version.")
        operating_system = OperatingSystem.detect(source, self.os_name or system_os_name)
        archive_filename = operating_system.archive_filename(version)
        base_url = (self.download_base_url or DEFAULT_DOWNLOAD_BASE_URL).rstrip("/")
        url = self.url or f"{base_url}/{archive_filename}"
        working_dir = self.working_dir or os.path.join(build_dir, "helm")
        install_dir = os.path.join(working_dir, "install")
        return HelmInstallation(
            version=version,
            operating_system=operating_system,
            archive_filename=archive_filename,
            url=url,
            working_dir=working_dir,
            archive_file=os.path.join(working_dir, archive_filename),
            home_dir=os.path.join(working_dir, "home"),
            package_dir=os.path.join(working_dir, "package"),
            install_dir=install_dir,
            version_file=os.path.join(working_dir, "versionOutput"),
            executable=self.executable or os.path.join(install_dir, operating_system.executable()),
            is_preinstalled=self.executable is not None,
        )


@dataclass(frozen=True)
class ChartSettings:
    name: str
    chart_dir: str
    chart_version: Optional[str]
    app_version: Optional[str]
    lint_strict: bool = False
    lint_values: Tuple[Tuple[str, str], ...] = ()
    lint_values_files: Tuple[str, ...] = ()

    @property
    def chart_yaml_path(self) -> str:
        return os.path.join(self.chart_dir, CHART_YAML)

    def package_filename(self) -> str:
        return f"{self.name}-{self.chart_version}.tgz"


@dataclass
class ChartConfig:
    chart_dir: str = "."
    name: Optional[str] = None
    chart_version: Optional[str] = None
    app_version: Optional[str] = None
    chart_version_from_git: bool = False
    app_version_from_git: bool = False
    lint_strict: bool = False
    lint_values: List[Tuple[str, str]] = field(default_factory=list)
    lint_values_files: List[str] = field(default_factory=list)

    def read_chart_yaml(self, source: str) -> dict:
        chart_yaml_path = os.path.join(self.chart_dir, CHART_YAML)
        if not os.path.isfile(chart_yaml_path):
            logger.debug(f"No {CHART_YAML} found in '{self.chart_dir}'.")
            return {}
        with open(chart_yaml_path, "r") as file:
            try:
                chart_yaml = yaml.safe_load(file)
            except yaml.YAMLError as exc:
                raise ValidationError(source, f"Error parsing YAML file '{chart_yaml_path}'. Error: {exc}.")
        if chart_yaml is None:
            return {}
        if not isinstance(chart_yaml, dict):
            raise ValidationError(source, f"'{chart_yaml_path}' doesn't contain a YAML mapping.")
        return chart_yaml

    def _git_version(self, source: str) -> str:
        repo = git_utils.find_repo(self.chart_dir)
        if repo is None:
            raise ValidationError(source, f"Can't find valid git repository in {self.chart_dir}")
        return git_utils.get_git_version(repo)

    def resolve(self, source: str) -> ChartSettings:
        chart_yaml = self.read_chart_yaml(source)
        name = self.name or chart_yaml.get(_chart_yaml_name_key) or os.path.basename(os.path.abspath(self.chart_dir))
        git_version: Optional[str] = None
        if self.chart_version_from_git or self.app_version_from_git:
            git_version = self._git_version(source)
        chart_version = self.chart_version
        if chart_version is None and self.chart_version_from_git:
            chart_version = git_version
        if chart_version is None and chart_yaml.get(_chart_yaml_chart_version_key) is not None:
            chart_version = str(chart_yaml[_chart_yaml_chart_version_key])
        app_version = self.app_version
        if app_version is None and self.app_version_from_git:
            app_version = git_version
        if app_version is None and chart_yaml.get(_chart_yaml_app_version_key) is not None:
            app_version = str(chart_yaml[_chart_yaml_app_version_key])
        if app_version is None:
            app_version = chart_version
        return ChartSettings(
            name=str(name),
            chart_dir=self.chart_dir,
            chart_version=chart_version,
            app_version=app_version,
            lint_strict=self.lint_strict,
            lint_values=tuple(self.lint_values),
            lint_values_files=tuple(self.lint_values_files),
        )
