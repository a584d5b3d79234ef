import sys

import pytest

from helm_build_suite.errors import BuildError
from helm_build_suite.utils.processes import run_and_log


def test_run_and_log_captures_output() -> None:
    res = run_and_log([sys.executable, "-c", "import sys; print('out'); sys.stderr.write('err\\n'); sys.exit(3)"])

    assert res.returncode == 3
    assert res.stdout == "out\n"
    assert res.stderr == "err\n"


def test_run_and_log_missing_executable() -> None:
    with pytest.raises(BuildError) as e:
        run_and_log(["/no/such/helm", "version"], source="HelmVersionChecker")
    assert e.value.source == "HelmVersionChecker"
