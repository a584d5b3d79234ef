"""Module with file utils"""
import logging
import os
import shutil
import tarfile

from helm_build_suite.errors import BuildError, ValidationError

logger = logging.getLogger(__name__)


def assert_binary_present_in_path(check_source_name: str, bin_name: str) -> None:
    """
    Checks if binary is available in the system. Raises ValidationError if not found.
    :param check_source_name: The name of the component making the check (for clear exception source).
    :param bin_name: The name of the binary executable.
    :return: None.
    """
    if shutil.which(bin_name) is None:
        raise ValidationError(
            check_source_name,
            f"Can't find {bin_name} executable. Please make sure it's installed.",
        )


def extract_tar_gz(check_source_name: str, archive_path: str, target_dir: str) -> None:
    """
    Extracts a gzipped tarball into a directory. Members escaping the target directory are rejected.
    :param check_source_name: The name of the component doing the extraction (for clear exception source).
    :param archive_path: Path to the '.tar.gz' file.
    :param target_dir: Directory to extract to, created if missing.
    :return: None.
    """
    os.makedirs(target_dir, exist_ok=True)
    try:
        with tarfile.open(archive_path, "r:gz") as archive:
            archive.extractall(target_dir, filter="data")
    except (tarfile.TarError, OSError) as e:
        raise BuildError(check_source_name, f"Can't extract archive '{archive_path}': {e}")
    logger.debug(f"Archive '{archive_path}' extracted to '{target_dir}'.")
