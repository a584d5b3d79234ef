"""
Access to environment variables and proxy settings.

Nothing here reads the process environment on its own: callers build a SystemLookup from an explicit
mapping (the CLI passes `os.environ`) and hand it to whatever needs it.
"""
import logging
from typing import Any, Callable, Dict, Iterator, Mapping, Optional
from urllib.parse import urlsplit

from helm_build_suite.utils.config import redact_url

logger = logging.getLogger(__name__)


class SystemLookup(Mapping[str, str]):
    """
    Read only, case-insensitive view of environment-like key/value pairs. Iterating yields the keys
    as they were given. When several keys differ only by case, the last one wins.
    """

    def __init__(self, values: Optional[Mapping[str, str]] = None):
        self._keys: Dict[str, str] = {}
        self._values: Dict[str, str] = {}
        for key, value in (values or {}).items():
            self._keys[key.lower()] = key
            self._values[key.lower()] = value

    def __getitem__(self, key: str) -> str:
        return self._values[key.lower()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._keys.values())

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._values


class ProxySettings:
    """
    Proxy configuration read from 'http_proxy' (or 'https_proxy', if the first one is not set)
    and 'no_proxy' entries of a SystemLookup.
    """

    def __init__(self, proxy_url: Optional[str], no_proxy: Optional[str]):
        self.proxy_url = proxy_url
        self.no_proxy = no_proxy
        self.protocol: Optional[str] = None
        self.host: Optional[str] = None
        self.port: Optional[int] = None
        if proxy_url is not None:
            self._parse(proxy_url)

    @classmethod
    def from_lookup(cls, lookup: SystemLookup) -> "ProxySettings":
        proxy = lookup.get("http_proxy") or lookup.get("https_proxy")
        return cls(proxy, lookup.get("no_proxy"))

    @property
    def is_configured(self) -> bool:
        return self.host is not None

    def _parse(self, proxy_url: str) -> None:
        try:
            parsed = urlsplit(proxy_url)
            port = parsed.port
        except ValueError as e:
            logger.warning(f"Failed to parse proxy url of '{redact_url(proxy_url)}': {e}")
            return
        if not parsed.scheme or not parsed.hostname:
            logger.warning(f"Failed to parse proxy url of '{redact_url(proxy_url)}': protocol or host is missing.")
            return
        self.protocol = parsed.scheme
        self.host = parsed.hostname
        if port is None:
            port = 443 if parsed.scheme == "https" else 80
        self.port = port

    @property
    def url(self) -> Optional[str]:
        """
        Normalized proxy URL, without any path, or None if no valid proxy is configured.
        """
        if not self.is_configured:
            return None
        return f"{self.protocol}://{self.host}:{self.port}"

    def bypasses(self, host: str) -> bool:
        """
        Checks if the host is excluded from proxying by the 'no_proxy' entries. Entries match the host itself
        and all of its subdomains; '*' matches every host.
        """
        if not self.no_proxy:
            return False
        host = host.lower()
        for entry in self.no_proxy.split(","):
            entry = entry.strip().lower().lstrip(".")
            if not entry:
                continue
            if entry == "*" or host == entry or host.endswith("." + entry):
                return True
        return False


def proxy_client_customizer(settings: ProxySettings, target_host: str) -> Callable[[Dict[str, Any]], None]:
    """
    Creates a customizer of httpx.Client options routing requests to the target host through the proxy.
    Environment based proxy discovery of httpx is disabled, so only the given settings apply.
    :param settings: Proxy settings.
    :param target_host: The host the client is going to talk to, checked against 'no_proxy'.
    :return: A callable modifying the client options in place.
    """

    def customize(options: Dict[str, Any]) -> None:
        options["trust_env"] = False
        if settings.is_configured and not settings.bypasses(target_host):
            logger.debug(f"Using proxy {settings.url} for host '{target_host}'.")
            options["proxy"] = settings.url

    return customize
