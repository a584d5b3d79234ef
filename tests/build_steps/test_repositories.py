import os

import httpx
import pytest
from pytest_mock import MockerFixture

from helm_build_suite.build_steps.helm import context_key_chart_full_path
from helm_build_suite.build_steps.pipeline import HelmBuildFilteringPipeline
from helm_build_suite.build_steps.repositories import HelmChartPublisher, context_key_publish_outcome
from helm_build_suite.errors import AuthenticationError, ConfigError, ValidationError
from helm_build_suite.utils.environment import SystemLookup
from tests.build_steps.helpers import init_config_for_steps, write_chart_yaml
from tests.publish.helpers import RecordingRepository, challenge


@pytest.fixture
def chart_dir(tmp_path) -> str:
    chart_dir = str(tmp_path / "chart")
    write_chart_yaml(chart_dir, "name: mychart\nversion: 1.0.0\n")
    return chart_dir


def _config(tmp_path, *args: str):
    return init_config_for_steps([HelmBuildFilteringPipeline()], ["--build-dir", str(tmp_path / "build"), *args])


def _packaged_chart(path: str) -> str:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(b"0123456789")
    return path


def test_publishing_disabled_without_url(tmp_path, chart_dir: str) -> None:
    step = HelmChartPublisher(SystemLookup(), "Linux")
    config = _config(tmp_path, "--chart-dir", chart_dir)
    context: dict = {}

    step.pre_run(config)
    step.run(config, context)

    assert context_key_publish_outcome not in context


def test_publish_packaged_chart(tmp_path, chart_dir: str, mocker: MockerFixture) -> None:
    repo = RecordingRepository(challenge('Basic realm="charts"'))
    mocker.patch.object(HelmChartPublisher, "_client_customizers", return_value=[repo.customizer])
    step = HelmChartPublisher(SystemLookup(), "Linux")
    config = _config(
        tmp_path,
        "--chart-dir",
        chart_dir,
        "--repository-url",
        "https://charts.example.com/repo/",
        "--repository-username",
        "user",
        "--repository-password",
        "secret",
        "--repository-auth-realm",
        "charts",
        "--repository-header",
        "X-Trace: 1",
        "--repository-header",
        "X-Trace: 2",
    )
    step.pre_run(config)
    chart_path = _packaged_chart(os.path.join(step.installation.package_dir, "mychart-1.0.0.tgz"))
    context: dict = {}

    step.run(config, context)

    assert context[context_key_publish_outcome].success
    assert [r.method for r in repo.requests] == ["PUT", "PUT"]
    assert str(repo.requests[0].url) == "https://charts.example.com/repo/mychart-1.0.0.tgz"
    assert repo.requests[1].headers.get_list("X-Trace") == ["1", "2"]
    assert repo.requests[1].content == b"0123456789"
    assert os.path.isfile(chart_path)


def test_publish_uses_chart_from_context(tmp_path, chart_dir: str, mocker: MockerFixture) -> None:
    repo = RecordingRepository(lambda r: httpx.Response(201))
    mocker.patch.object(HelmChartPublisher, "_client_customizers", return_value=[repo.customizer])
    step = HelmChartPublisher(SystemLookup(), "Linux")
    config = _config(
        tmp_path,
        "--chart-dir",
        chart_dir,
        "--repository-url",
        "https://museum.example.com/api/charts",
        "--repository-type",
        "chartmuseum",
    )
    step.pre_run(config)
    chart_path = _packaged_chart(str(tmp_path / "elsewhere" / "mychart-1.0.0.tgz"))

    step.run(config, {context_key_chart_full_path: chart_path})

    assert len(repo.requests) == 1
    assert repo.requests[0].method == "POST"
    assert str(repo.requests[0].url) == "https://museum.example.com/api/charts"


def test_failed_publish_raises(tmp_path, chart_dir: str, mocker: MockerFixture) -> None:
    repo = RecordingRepository(challenge('Basic realm="charts"'))
    mocker.patch.object(HelmChartPublisher, "_client_customizers", return_value=[repo.customizer])
    step = HelmChartPublisher(SystemLookup(), "Linux")
    config = _config(tmp_path, "--chart-dir", chart_dir, "--repository-url", "https://charts.example.com")
    step.pre_run(config)
    _packaged_chart(os.path.join(step.installation.package_dir, "mychart-1.0.0.tgz"))
    context: dict = {}

    with pytest.raises(AuthenticationError) as e:
        step.run(config, context)

    assert "code=401, message=Unauthorized" in e.value.msg
    assert not context[context_key_publish_outcome].success
    assert len(repo.requests) == 1


def test_bad_repository_url(tmp_path, chart_dir: str) -> None:
    step = HelmChartPublisher(SystemLookup(), "Linux")

    with pytest.raises(ConfigError):
        step.pre_run(_config(tmp_path, "--chart-dir", chart_dir, "--repository-url", "not a url"))


def test_bad_repository_header(tmp_path, chart_dir: str) -> None:
    step = HelmChartPublisher(SystemLookup(), "Linux")
    config = _config(
        tmp_path,
        "--chart-dir",
        chart_dir,
        "--repository-url",
        "https://charts.example.com",
        "--repository-header",
        "no separator",
    )

    with pytest.raises(ConfigError):
        step.pre_run(config)


def test_missing_chart_version(tmp_path) -> None:
    chart_dir = str(tmp_path / "chart")
    write_chart_yaml(chart_dir, "name: mychart\n")
    step = HelmChartPublisher(SystemLookup(), "Linux")

    with pytest.raises(ValidationError):
        step.pre_run(_config(tmp_path, "--chart-dir", chart_dir, "--repository-url", "https://charts.example.com"))


def test_client_customizers(tmp_path, chart_dir: str) -> None:
    step = HelmChartPublisher(SystemLookup({"http_proxy": "http://proxy.local:3128"}), "Linux")
    config = _config(
        tmp_path,
        "--chart-dir",
        chart_dir,
        "--repository-url",
        "https://charts.example.com",
        "--repository-timeout",
        "5",
    )
    options: dict = {}

    for customize in step._client_customizers(config):
        customize(options)

    assert options == {"trust_env": False, "proxy": "http://proxy.local:3128", "timeout": 5.0}
