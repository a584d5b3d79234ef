"""Dependency injection container and the runner executing build steps."""
import logging
import sys
from typing import List, Optional

import configargparse
from dependency_injector import containers, providers

from helm_build_suite.build_steps import BuildStep
from helm_build_suite.build_steps.pipeline import HelmBuildFilteringPipeline
from helm_build_suite.errors import Error
from helm_build_suite.types import Context

logger = logging.getLogger(__name__)


class ComponentsContainer(containers.DeclarativeContainer):
    """
    A dependency injection container for easily switching build engines. The system lookup and platform
    information are provided from outside, so nothing below reads process-global state.
    """

    config = providers.Configuration()
    lookup = providers.Dependency()
    system_os_name = providers.Dependency(instance_of=str)
    machine = providers.Dependency(instance_of=str)

    builder = providers.Selector(
        config.build_engine,
        helm=providers.Singleton(
            HelmBuildFilteringPipeline,
            lookup=lookup,
            system_os_name=system_os_name,
            machine=machine,
        ),
    )


class Runner:
    """
    Executes the steps of a build: every pre_run, then every run, then every cleanup. Exits the
    process with code 1 if the build fails.
    """

    def __init__(self, config: configargparse.Namespace, steps: List[BuildStep]):
        self._config = config
        self._steps = steps
        self._context: Context = {}
        self._failure: Optional[Error] = None

    @property
    def context(self) -> Context:
        return self._context

    @property
    def has_failed(self) -> bool:
        return self._failure is not None

    def run(self) -> None:
        self.run_pre_steps()
        self.run_build_steps()
        self.run_cleanup()
        if self.has_failed:
            logger.error(f"Build failed: {self._failure}. Exit 1.")
            sys.exit(1)

    def run_pre_steps(self) -> None:
        for step in self._steps:
            try:
                step.pre_run(self._config)
            except Error as e:
                logger.error(f"Pre-run of {step.name} failed: {e}. Nothing was built, exiting.")
                sys.exit(1)

    def run_build_steps(self) -> None:
        for step in self._steps:
            try:
                step.run(self._config, self._context)
            except Error as e:
                logger.error(f"Run of {step.name} failed: {e}. Skipping the remaining steps, moving to cleanup.")
                self._failure = e
                return

    def run_cleanup(self) -> None:
        for step in self._steps:
            try:
                step.cleanup(self._config, self._context, self.has_failed)
            except Error as e:
                logger.error(f"Cleanup of {step.name} failed: {e}. Continuing with the next one.")
