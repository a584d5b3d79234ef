"""Module with git related utilities."""
import logging
from typing import Optional

import git

logger = logging.getLogger(__name__)


def find_repo(path: str) -> Optional[git.Repo]:
    """
    Finds the git repository containing the path.
    :param path: The path to search for '.git' in. Parent folders are searched as well.
    :return: The repository or None if the path isn't inside a git repository.
    """
    try:
        return git.Repo(path, search_parent_directories=True)
    except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
        logger.debug(f"No git repository found for path '{path}'.")
        return None


def get_git_version(repo: git.Repo) -> str:
    """
    Gets a chart version in the format [last-tag]-[last-commit-sha]. If HEAD is exactly the last
    tag, only the tag is returned. A leading 'v' of the tag (and a "-", "." or "_" separator after it)
    is removed, so that helm accepts the result as a chart version.
    :param repo: The repository to inspect.
    :return: The version string.
    """
    tags = sorted(repo.tags, key=lambda t: t.commit.committed_date)
    latest_tag = tags[-1] if tags else None
    version = "0.0.0" if latest_tag is None else latest_tag.name
    if version.startswith("v"):
        version = version.lstrip("v").lstrip("-_.")
    head_sha = repo.head.commit.hexsha
    if latest_tag is not None and head_sha == latest_tag.commit.hexsha:
        return version
    return f"{version}-{head_sha}"
