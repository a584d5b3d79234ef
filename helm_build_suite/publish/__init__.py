from .executor import ChartPublisher, FailureKind, PublishOutcome, TRANSPORT_ERROR_STATUS
from .repository import ArtifactFile, RepositoryConfig, RepositoryTarget, RepositoryVariant

__all__ = [
    "ArtifactFile",
    "ChartPublisher",
    "FailureKind",
    "PublishOutcome",
    "RepositoryConfig",
    "RepositoryTarget",
    "RepositoryVariant",
    "TRANSPORT_ERROR_STATUS",
]
