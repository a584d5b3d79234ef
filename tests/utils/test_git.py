from typing import Dict, List

import git
import pytest
from pytest_mock import MockerFixture

from helm_build_suite.utils.git import find_repo, get_git_version


@pytest.mark.parametrize(
    "tags, last_commit_hash, expected_version_string",
    [
        ([], "123", "0.0.0-123"),
        ([{"name": "v0.0.1", "sha": "123", "date": 1}], "123", "0.0.1"),
        ([{"name": "0.0.1", "sha": "012", "date": 1}], "123", "0.0.1-123"),
        ([{"name": "v0.0.1", "sha": "012", "date": 1}], "123", "0.0.1-123"),
        ([{"name": "v-0.0.1", "sha": "012", "date": 1}], "123", "0.0.1-123"),
        ([{"name": "v_0.0.1", "sha": "012", "date": 1}], "123", "0.0.1-123"),
        ([{"name": "v.0.0.1", "sha": "012", "date": 1}], "123", "0.0.1-123"),
        (
            [{"name": "v0.2.0", "sha": "123", "date": 2}, {"name": "v0.1.0", "sha": "012", "date": 1}],
            "123",
            "0.2.0",
        ),
        (
            [{"name": "v0.1.0", "sha": "012", "date": 1}, {"name": "v0.2.0", "sha": "034", "date": 2}],
            "123",
            "0.2.0-123",
        ),
    ],
)
def test_git_version(tags: List[Dict], last_commit_hash: str, expected_version_string: str, mocker: MockerFixture) -> None:
    repo_mock = mocker.MagicMock()
    tag_objs = []
    for tag in tags:
        tag_obj = mocker.Mock()
        type(tag_obj).name = mocker.PropertyMock(return_value=tag["name"])
        commit = mocker.Mock()
        type(commit).hexsha = mocker.PropertyMock(return_value=tag["sha"])
        type(commit).committed_date = mocker.PropertyMock(return_value=tag["date"])
        type(tag_obj).commit = mocker.PropertyMock(return_value=commit)
        tag_objs.append(tag_obj)
    type(repo_mock).tags = mocker.PropertyMock(return_value=tag_objs)
    repo_mock.head.commit.hexsha = last_commit_hash

    assert get_git_version(repo_mock) == expected_version_string


def test_find_repo_returns_none_outside_of_repo(mocker: MockerFixture) -> None:
    mocker.patch("git.Repo", side_effect=git.exc.InvalidGitRepositoryError("bogus/path"))

    assert find_repo("bogus/path") is None


def test_find_repo_searches_parent_directories(mocker: MockerFixture) -> None:
    repo_mock = mocker.MagicMock()
    repo_cls = mocker.patch("git.Repo", return_value=repo_mock)

    assert find_repo("bogus/path") is repo_mock
    repo_cls.assert_called_once_with("bogus/path", search_parent_directories=True)
