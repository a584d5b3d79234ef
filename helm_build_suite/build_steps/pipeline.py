from typing import Optional

from helm_build_suite.build_steps.build_step import BuildStepsFilteringPipeline
from helm_build_suite.build_steps.helm import (
    HelmChartCreator,
    HelmChartLinter,
    HelmChartPackager,
    HelmDownloader,
    HelmInitializer,
    HelmInstaller,
    HelmPlatformVerifier,
    HelmVersionChecker,
)
from helm_build_suite.build_steps.repositories import HelmChartPublisher
from helm_build_suite.utils.environment import SystemLookup


class HelmBuildFilteringPipeline(BuildStepsFilteringPipeline):
    """
    Pipeline that combines all the steps required to install helm, then create, lint, package and publish a chart.
    """

    def __init__(
        self,
        lookup: Optional[SystemLookup] = None,
        system_os_name: Optional[str] = None,
        machine: Optional[str] = None,
    ) -> None:
        super().__init__(
            [
                HelmPlatformVerifier(lookup, system_os_name, machine),
                HelmDownloader(lookup, system_os_name),
                HelmInstaller(lookup, system_os_name),
                HelmInitializer(lookup, system_os_name),
                HelmVersionChecker(lookup, system_os_name),
                HelmChartCreator(lookup, system_os_name),
                HelmChartLinter(lookup, system_os_name),
                HelmChartPackager(lookup, system_os_name),
                HelmChartPublisher(lookup, system_os_name),
            ],
            "Helm build engine options",
        )
