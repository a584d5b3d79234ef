"""Errors returned by helm_build_suite"""
from typing import Optional


class Error(Exception):
    """
    Basic error class that just returns a message.
    """

    def __init__(self, message: str):
        super().__init__()
        self.msg = message

    def __str__(self) -> str:
        return self.msg


class ConfigError(Error):
    """
    Error class that shows error in configuration options.
    """

    config_option: str

    def __init__(self, config_option: str, message: str):
        super().__init__(message)
        self.config_option = config_option

    def __str__(self) -> str:
        return f"Error for config option '{self.config_option}': {self.msg}"


class ValidationError(Error):
    """
    ValidationError means some input data (configuration, chart, platform) is impossible to process
    or fails assumptions.
    """

    source: str

    def __init__(self, source: str, message: str):
        super().__init__(message)
        self.source = source

    def __str__(self) -> str:
        return f"Source: '{self.source}', message: {self.msg}."


class BuildError(Error):
    """
    BuildError can be raised only during executing actual build process (not configuration or validation).
    """

    source: str

    def __init__(self, source: str, message: str):
        super().__init__(message)
        self.source = source

    def __str__(self) -> str:
        return f"Source: '{self.source}', message: {self.msg}."


class PublishError(BuildError):
    """
    Base class for all the failures of publishing a chart archive to a chart repository.
    """

    status_code: Optional[int]

    def __init__(self, source: str, message: str, status_code: Optional[int] = None):
        super().__init__(source, message)
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is None:
            return super().__str__()
        return f"Source: '{self.source}', status: {self.status_code}, message: {self.msg}."


class ArtifactMissingError(PublishError):
    """
    The chart archive to publish doesn't exist. Raised before any request is sent.
    """


class TransportError(PublishError):
    """
    The connection to the repository couldn't be established or was interrupted.
    """


class AuthenticationError(PublishError):
    """
    The repository still answers with an authentication challenge after credentials were offered,
    or the configured credentials and realm can't satisfy any of the offered Basic challenges.
    """


class UnsupportedChallengeError(PublishError):
    """
    The repository demands authentication, but none of the offered challenges uses the Basic scheme.
    """


class HttpStatusError(PublishError):
    """
    The repository answered with a non-successful status unrelated to authentication.
    """
