"""Main module. Loads configuration and executes main control loops."""
import logging
import os
import platform
import sys
from typing import List, NewType

import configargparse
from dependency_injector import providers

from helm_build_suite.build_steps import BuildStep
from helm_build_suite.build_steps.steps import ALL_STEPS
from helm_build_suite.components import ComponentsContainer, Runner
from helm_build_suite.errors import ConfigError
from helm_build_suite.types import STEP_ALL
from helm_build_suite.utils.config import format_redacted_config
from helm_build_suite.utils.environment import SystemLookup

ver = "v0.0.0-dev"
app_name = "helm_build_suite"
logger = logging.getLogger(__name__)

BuildEngineType = NewType("BuildEngineType", str)
BUILD_ENGINE_HELM = BuildEngineType("helm")
ALL_BUILD_ENGINES = [BUILD_ENGINE_HELM]


def get_version() -> str:
    try:
        from .version import build_ver

        return build_ver
    except ImportError:
        return ver


def configure_global_options(config_parser: configargparse.ArgParser) -> None:
    config_parser.add_argument(
        "-d",
        "--debug",
        required=False,
        default=False,
        action="store_true",
        help="Enable debug messages.",
    )
    config_parser.add_argument("--version", action="version", version=f"{app_name} {get_version()}")
    config_parser.add_argument(
        "-b",
        "--build-engine",
        required=False,
        default=BUILD_ENGINE_HELM,
        type=BuildEngineType,
        help="Select the build engine used for building your chart.",
    )
    config_parser.add_argument(
        "--build-dir",
        required=False,
        default="build",
        help="Directory for downloaded helm, its home and packaged charts.",
    )
    steps_group = config_parser.add_mutually_exclusive_group()
    steps_group.add_argument(
        "--steps",
        nargs="+",
        help=f"List of steps to execute. Available steps: {sorted(ALL_STEPS)}",
        required=False,
        default=["all"],
    )
    steps_group.add_argument(
        "--skip-steps",
        nargs="+",
        help=f"List of steps to skip. Available steps: {sorted(ALL_STEPS)}",
        required=False,
        default=[],
    )


def get_default_config_file_path(argv: List[str]) -> str:
    # the only place where we check for command line option directly,
    # as that's the only way to change where we load the file from
    short_opt = "-c"
    long_opt = "--chart-dir"
    base_dir = os.getcwd()
    charts_config_path = ""
    if short_opt in argv or long_opt in argv:
        opt = short_opt if short_opt in argv else long_opt
        c_ind = argv.index(opt)
        if c_ind + 1 < len(argv):
            charts_config_path = os.path.join(base_dir, argv[c_ind + 1], ".hbs", "main.yaml")
    if os.path.isfile(charts_config_path):
        config_path = charts_config_path
    else:
        config_path = os.path.join(base_dir, ".hbs", "main.yaml")
    logger.debug(f"Using {config_path} as configuration file path.")
    return config_path


def get_global_config_parser(add_help: bool = True, argv: List[str] = None) -> configargparse.ArgParser:
    config_file_path = get_default_config_file_path(sys.argv if argv is None else argv)
    config_parser = configargparse.ArgParser(
        prog=app_name,
        add_config_file_help=True,
        default_config_files=[config_file_path],
        config_file_parser_class=configargparse.YAMLConfigFileParser,
        description="Install helm, then create, lint, package and publish Helm charts.",
        add_env_var_help=True,
        auto_env_var_prefix="HBS_",
        formatter_class=configargparse.ArgumentDefaultsHelpFormatter,
        add_help=add_help,
    )
    configure_global_options(config_parser)
    return config_parser


def validate_global_config(config: configargparse.Namespace) -> None:
    if config.build_engine not in ALL_BUILD_ENGINES:
        raise ConfigError(
            "build_engine",
            f"Unknown build engine '{config.build_engine}'. Valid engines are: {ALL_BUILD_ENGINES}.",
        )
    # '--steps' and '--skip-steps' can't be used together, but that is already enforced by argparse
    if STEP_ALL in config.skip_steps:
        raise ConfigError("skip-steps", f"'{STEP_ALL}' is not a reasonable step kind to skip.")
    for step in config.steps + config.skip_steps:
        if step not in ALL_STEPS:
            raise ConfigError("steps", f"Unknown step '{step}'. Valid steps are: {sorted(ALL_STEPS)}.")


def get_config(steps: List[BuildStep]) -> configargparse.Namespace:
    try:
        config_parser = get_global_config_parser()
        for step in steps:
            step.initialize_config(config_parser)
        config = config_parser.parse_args()
        validate_global_config(config)
    except ConfigError as e:
        logger.error(f"Error when checking config option '{e.config_option}': {e.msg}")
        sys.exit(1)

    logger.info("Starting build with the following options")
    logger.info(f"\n{format_redacted_config(config)}")
    return config


def get_container(build_engine: str) -> ComponentsContainer:
    container = ComponentsContainer(
        lookup=providers.Object(SystemLookup(os.environ)),
        system_os_name=providers.Object(platform.system()),
        machine=providers.Object(platform.machine()),
    )
    container.config.from_dict({"build_engine": build_engine})
    return container


def configure_logging(debug: bool) -> None:
    logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s: %(message)s")
    logging.getLogger().setLevel(logging.DEBUG if debug else logging.INFO)


def select_build_engine() -> BuildEngineType:
    """
    Reads only the global options, so logging can be set up and the pipeline picked before the options
    of the pipeline's steps are known.
    """
    global_only_config = get_global_config_parser(add_help=False).parse_known_args()[0]
    configure_logging(global_only_config.debug)
    try:
        validate_global_config(global_only_config)
    except ConfigError as e:
        logger.error(f"Error when checking config option '{e.config_option}': {e.msg}")
        sys.exit(1)
    return global_only_config.build_engine


def main() -> None:
    build_engine = select_build_engine()
    steps: List[BuildStep] = [get_container(build_engine).builder()]
    config = get_config(steps)
    Runner(config, steps).run()


if __name__ == "__main__":
    main()
