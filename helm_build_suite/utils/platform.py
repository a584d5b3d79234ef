"""Operating system and architecture support of the helm distribution."""
from enum import Enum

from helm_build_suite.errors import ValidationError

SUPPORTED_ARCHITECTURES = {"amd64", "x86_64"}


class OperatingSystem(Enum):
    WINDOWS = ("windows", "windows", ".exe")
    LINUX = ("linux", "linux", "")
    MAC = ("mac os x", "darwin", "")

    def __init__(self, os_name_prefix: str, filename_part: str, executable_suffix: str):
        self.os_name_prefix = os_name_prefix
        self.filename_part = filename_part
        self.executable_suffix = executable_suffix

    @classmethod
    def detect(cls, check_source_name: str, os_name: str) -> "OperatingSystem":
        """
        Finds the operating system by the prefix of its name. 'Darwin', as reported by python's
        `platform.system()`, is accepted for Mac as well.
        :param check_source_name: The name of the component making the check (for clear exception source).
        :param os_name: The name of the operating system.
        :return: The detected OperatingSystem.
        """
        lowered = os_name.lower()
        for candidate in cls:
            if lowered.startswith(candidate.os_name_prefix) or lowered.startswith(candidate.filename_part):
                return candidate
        raise ValidationError(check_source_name, f"Unsupported operating system: {lowered}")

    def archive_filename(self, version: str) -> str:
        return f"helm-{version}-{self.filename_part}-amd64.tar.gz"

    def executable(self) -> str:
        return f"{self.filename_part}-amd64/helm{self.executable_suffix}"


def verify_architecture(check_source_name: str, arch: str) -> None:
    if arch.lower() not in SUPPORTED_ARCHITECTURES:
        raise ValidationError(
            check_source_name,
            f"Helm is not supported on architecture '{arch}', only {sorted(SUPPORTED_ARCHITECTURES)}",
        )
