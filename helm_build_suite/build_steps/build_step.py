"""Build steps and the pipelines grouping them."""
import argparse
import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Set, cast

import configargparse

from helm_build_suite.errors import Error
from helm_build_suite.types import STEP_ALL, Context, StepType
from helm_build_suite.utils import config as hbs_config
from helm_build_suite.utils import files

logger = logging.getLogger(__name__)


class BuildStep(ABC):
    """
    A single unit of work of a build, like installing helm or packaging the chart.

    A build calls the methods of all its steps in stages: `initialize_config` of every step first,
    then `pre_run` of every step, then `run`, and `cleanup` at the very end:
    - initialize_config only declares the options the step understands,
    - pre_run validates config and environment and should be fast; a failure here stops the build
      before any real work is done,
    - run does the actual, possibly slow, work and can leave results in the context for later steps,
    - cleanup runs for every step after all runs, including when one of them failed.
    """

    @property
    def name(self) -> str:
        """
        The name of the step, used in logs and as the source of raised errors.
        :return: The name of the implementing class.
        """
        return self.__class__.__name__

    @property
    @abstractmethod
    def steps_provided(self) -> Set[StepType]:
        """
        Step types this BuildStep belongs to. The step is executed only if one of them is selected
        with '--steps' and none is excluded with '--skip-steps'.
        :return: A set with elements from ALL_STEPS.
        """
        raise NotImplementedError

    def initialize_config(self, config_parser: configargparse.ArgParser) -> None:
        """
        Declares the config options of the step. Must not do anything else.
        :param config_parser: configargparse.ArgParser (or its argument group) to add the options to.
        :return: None
        """
        pass  # pragma: no cover

    def pre_run(self, config: argparse.Namespace) -> None:
        """
        Validates the config before anything is executed.
        :param config: Parsed configuration.
        :return: None
        """
        pass  # pragma: no cover

    @abstractmethod
    def run(self, config: argparse.Namespace, context: Context) -> None:
        """
        Does the work of the step.
        :param config: Parsed configuration.
        :param context: Results shared between the steps of one build.
        :return: None
        """
        raise NotImplementedError

    def cleanup(
        self,
        config: argparse.Namespace,
        context: Context,
        has_build_failed: bool,
    ) -> None:
        """
        Releases whatever the step acquired during the build.
        :param config: Parsed configuration.
        :param context: Results shared between the steps of one build.
        :param has_build_failed: True if the run of any step failed.
        :return: None
        """
        pass  # pragma: no cover

    def _assert_binary_present_in_path(self, bin_name: str) -> None:
        files.assert_binary_present_in_path(self.name, bin_name)

    def _assert_version_in_range(self, app_name: str, version: str, min_version: str, max_version_exc: str) -> None:
        """
        Checks that min_version <= version < max_version_exc. Raises ValidationError otherwise.
        """
        hbs_config.assert_version_in_range(self.name, app_name, version, min_version, max_version_exc)


class BuildStepsFilteringPipeline(BuildStep):
    """
    A BuildStep made of other BuildSteps. Their options are shown together as one group in the help
    message and only the steps selected with '--steps' and '--skip-steps' are executed.
    """

    def __init__(self, pipeline: List[BuildStep], config_group_desc: str):
        """
        :param pipeline: The BuildSteps, in the order of execution.
        :param config_group_desc: Description of the config options group of the pipeline.
        """
        self._config_group_desc = config_group_desc
        self._pipeline = pipeline
        self._config_parser_group: Optional[configargparse.ArgParser] = None

    @property
    def steps_provided(self) -> Set[StepType]:
        provided: Set[StepType] = set()
        for build_step in self._pipeline:
            provided |= build_step.steps_provided
        return provided

    def initialize_config(self, config_parser: configargparse.ArgParser) -> None:
        self._config_parser_group = cast(
            configargparse.ArgParser,
            config_parser.add_argument_group(self._config_group_desc),
        )
        for build_step in self._pipeline:
            build_step.initialize_config(self._config_parser_group)

    def pre_run(self, config: argparse.Namespace) -> None:
        self._for_selected_steps(config, "pre-run", lambda step: step.pre_run(config))

    def run(self, config: argparse.Namespace, context: Context) -> None:
        self._for_selected_steps(config, "build", lambda step: step.run(config, context))

    def cleanup(
        self,
        config: argparse.Namespace,
        context: Context,
        has_build_failed: bool,
    ) -> None:
        self._for_selected_steps(config, "cleanup", lambda step: step.cleanup(config, context, has_build_failed))

    @staticmethod
    def is_selected(step: BuildStep, config: argparse.Namespace) -> bool:
        selected = STEP_ALL in config.steps or any(s in step.steps_provided for s in config.steps)
        skipped = any(s in step.steps_provided for s in config.skip_steps)
        return selected and not skipped

    def _for_selected_steps(
        self,
        config: argparse.Namespace,
        stage: str,
        step_function: Callable[[BuildStep], None],
    ) -> None:
        for step in self._pipeline:
            if not self.is_selected(step, config):
                logger.info(f"Skipping {stage} step for {step.name} as it was not configured to run.")
                continue
            logger.info(f"Running {stage} step for {step.name}")
            try:
                step_function(step)
            except Error as e:
                logger.error(f"Error when running {stage} step for {step.name}: {e.msg}")
                raise
