import argparse
import os
from typing import List

import configargparse

from helm_build_suite.build_steps import BuildStep


def get_test_config_parser() -> configargparse.ArgParser:
    config_parser = configargparse.ArgParser(
        prog="test session",
        description="test session",
        formatter_class=configargparse.ArgumentDefaultsHelpFormatter,
        add_help=True,
    )
    config_parser.add_argument("--build-dir", required=False, default="build")
    steps_group = config_parser.add_mutually_exclusive_group()
    steps_group.add_argument(
        "--steps",
        nargs="+",
        help="List of steps to execute.",
        required=False,
        default=["all"],
    )
    steps_group.add_argument(
        "--skip-steps",
        nargs="+",
        help="List of steps to skip.",
        required=False,
        default=[],
    )
    return config_parser


def init_config_for_steps(steps: List[BuildStep], args: List[str] = None) -> argparse.Namespace:
    config_parser = get_test_config_parser()
    for step in steps:
        step.initialize_config(config_parser)
    return config_parser.parse_args(args or [])


def write_chart_yaml(chart_dir: str, content: str) -> str:
    os.makedirs(chart_dir, exist_ok=True)
    path = os.path.join(chart_dir, "Chart.yaml")
    with open(path, "w") as f:
        f.write(content)
    return path
