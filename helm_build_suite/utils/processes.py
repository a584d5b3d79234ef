import logging
import shlex
import subprocess  # nosec: we need it to invoke binaries from system
from typing import Any, List, Optional

from helm_build_suite.errors import BuildError

logger = logging.getLogger(__name__)


def run_and_log(
    args: List[str], source: Optional[str] = None, print_debug: bool = False, **kwargs: Any
) -> subprocess.CompletedProcess:
    """
    Runs a command, capturing its output as text unless told otherwise, and logs the command line,
    its stderr and the exit code. A non-zero exit code is returned, not raised.
    :param args: The command line.
    :param source: The name of the component running the command (for clear exception source).
    :param print_debug: Log stdout of the command on debug level as well.
    :return: The completed process. Raises BuildError if the executable can't be started at all.
    """
    kwargs.setdefault("text", True)
    kwargs.setdefault("capture_output", True)
    logger.info(f"Running command: {shlex.join(args)}")
    try:
        run_res = subprocess.run(args, **kwargs)  # nosec
    except OSError as e:
        raise BuildError(source or args[0], f"Can't execute '{args[0]}': {e}")
    if print_debug and run_res.stdout:
        logger.debug("Command stdout is:")
        for line in run_res.stdout.splitlines():
            logger.debug(line)
    if run_res.stderr:
        logger.info("Command stderr is:")
        for line in run_res.stderr.splitlines():
            logger.info(line)
    logger.info(f"Command executed, exit code: {run_res.returncode}.")
    return run_res
