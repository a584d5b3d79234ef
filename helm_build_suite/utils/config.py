import argparse
from typing import Any, List, Optional, Tuple
from urllib.parse import urlsplit, urlunsplit

import semver

from helm_build_suite.errors import ConfigError, ValidationError


def get_config_attribute_from_cmd_line_option(cmd_line_opt: str) -> str:
    return cmd_line_opt.lstrip("-").replace("-", "_")


def get_config_value_by_cmd_line_option(config: argparse.Namespace, cmd_line_opt: str) -> Any:
    return getattr(config, get_config_attribute_from_cmd_line_option(cmd_line_opt), None)


def parse_version(version: str) -> semver.Version:
    """
    Parses a semver version string that might start with an optional 'v' prefix.
    :param version: The version string.
    :return: Parsed version.
    """
    if version.startswith("v"):
        version = version[1:]
    return semver.Version.parse(version)


def assert_version_in_range(
    check_source_name: str, app_name: str, version: str, min_version: str, max_version_exc: str
) -> None:
    """
    Checks if the given app_name with a string version falls in between specified min and max
    versions (min_version <= version < max_version). Raises ValidationError.
    :param check_source_name: The name of the component making the check (for clear exception source).
    :param app_name: The name of the app (used just for logging purposes).
    :param version: The version string (semver, might start with optional 'v' prefix).
    :param min_version: proper semver version string to check for (includes this version)
    :param max_version_exc: proper semver version string to check for (excludes this version)
    :return:
    """
    try:
        parsed_ver = parse_version(version)
    except ValueError:
        raise ValidationError(check_source_name, f"Can't parse version '{version}' of '{app_name}'.")
    parsed_min_version = semver.Version.parse(min_version)
    parsed_max_version = semver.Version.parse(max_version_exc)
    if parsed_ver < parsed_min_version:
        raise ValidationError(
            check_source_name,
            f"Min version '{min_version}' of '{app_name}' is required, '{parsed_ver}' found.",
        )
    if parsed_ver >= parsed_max_version:
        raise ValidationError(
            check_source_name,
            f"Version '{parsed_ver}' of '{app_name}' is detected, but lower than {max_version_exc} is required.",
        )


def parse_key_value_pairs(config_option: str, entries: Optional[List[str]], separator: str) -> List[Tuple[str, str]]:
    """
    Splits entries like 'key=value' into ordered (key, value) pairs. Duplicated keys are kept.
    :param config_option: The option the entries come from (used in errors).
    :param entries: Raw entries, None is treated as empty list.
    :param separator: The separator between the key and the value. Only the first occurrence is used.
    :return: List of (key, value) tuples in the original order.
    """
    pairs: List[Tuple[str, str]] = []
    for entry in entries or []:
        key, sep, value = entry.partition(separator)
        if not sep or not key.strip():
            raise ConfigError(config_option, f"Entry '{entry}' is not in the '<name>{separator}<value>' format.")
        pairs.append((key.strip(), value.strip()))
    return pairs


SECRET_MASK = "******"
_SECRET_ATTRIBUTE_PARTS = ("password", "token", "secret")


def redact_url(url: str) -> str:
    """
    Replaces the user information part of a URL, like 'user:password@', with a mask.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return SECRET_MASK
    if parts.username is None and parts.password is None:
        return url
    host = parts.netloc.rpartition("@")[2]
    return urlunsplit(parts._replace(netloc=f"{SECRET_MASK}@{host}"))


def _redact_value(attribute: str, value: Any) -> Any:
    if value is None:
        return value
    if any(part in attribute for part in _SECRET_ATTRIBUTE_PARTS):
        return SECRET_MASK
    if attribute.endswith("header") and isinstance(value, list):
        # header values often carry tokens, only names are kept
        return [f"{str(entry).partition(':')[0]}: {SECRET_MASK}" for entry in value]
    if isinstance(value, str) and "://" in value:
        return redact_url(value)
    return value


def format_redacted_config(config: argparse.Namespace) -> str:
    """
    Lists all the config values, one per line, with passwords, tokens, header values and credentials
    in URLs masked, so the result can be logged.
    :param config: Parsed configuration.
    :return: Multiline text with 'name: value' lines sorted by name.
    """
    return "\n".join(f"  {attr}: {_redact_value(attr, value)}" for attr, value in sorted(vars(config).items()))
