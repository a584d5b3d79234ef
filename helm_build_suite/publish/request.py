"""Builds the upload requests for the supported chart repository variants."""
from typing import List, Tuple

import httpx

from helm_build_suite.publish.repository import ArtifactFile, RepositoryTarget, RepositoryVariant


def generic_helm_repo_request(base_url: str, artifact: ArtifactFile, content: bytes) -> Tuple[str, str, bytes]:
    """
    Plain helm repositories serve static files: the archive is PUT under its own file name.
    """
    separator = "" if base_url.endswith("/") else "/"
    return "PUT", f"{base_url}{separator}{artifact.filename}", content


def chart_museum_request(base_url: str, artifact: ArtifactFile, content: bytes) -> Tuple[str, str, bytes]:
    """
    ChartMuseum reads chart name and version from the archive, so it's POSTed to the base URL as is.
    """
    return "POST", base_url, content


def build_publish_request(target: RepositoryTarget, artifact: ArtifactFile, content: bytes) -> httpx.Request:
    """
    Creates the unauthenticated request uploading the chart archive to the repository.
    :param target: The repository to publish to.
    :param artifact: The chart archive.
    :param content: Raw bytes of the archive.
    :return: The request, including all the extra headers of the target in their configured order.
    """
    if target.variant is RepositoryVariant.GENERIC_HELM_REPO:
        method, url, body = generic_helm_repo_request(target.base_url, artifact, content)
    elif target.variant is RepositoryVariant.CHART_MUSEUM:
        method, url, body = chart_museum_request(target.base_url, artifact, content)
    else:
        raise ValueError(f"Unsupported repository variant: {target.variant}")
    headers: List[Tuple[str, str]] = list(target.extra_headers)
    return httpx.Request(method, url, headers=headers, content=body)
