"""Typed configuration for the updater.

Configuration is read once from a TOML file (either a dedicated file or the
``[tool.addon-updates]`` table of a ``pyproject.toml``) and validated before
any network access.
"""

import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

from addon_updates.errors import MissingConfiguration

# Appended to api_url when no explicit license endpoint is configured.
LICENSE_API_PATH = "/wp-json/hizzle/v1/licenses"

DEFAULT_TIMEOUT = 15


@dataclass(frozen=True)
class UpdaterConfig:
    """Settings recognized by the updater.

    Attributes:
        site_url: Canonical URL of the site the add-ons are installed on.
        license_api_url: Base URL of the license endpoints.
        versions_api_url: URL of the batched versions endpoint.
        api_headers: Extra headers sent with every remote request.
        prefix: Namespace used to build cache and option key names.
        timeout: HTTP timeout in seconds.
    """

    site_url: str
    license_api_url: str
    versions_api_url: str
    api_headers: dict[str, str] = field(default_factory=dict)
    prefix: str = "wp_plugin_updates"
    timeout: int = DEFAULT_TIMEOUT

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "UpdaterConfig":
        """Build and validate a config from a plain mapping.

        Args:
            data: Raw settings, e.g. a decoded TOML table.

        Returns:
            A validated UpdaterConfig.

        Raises:
            MissingConfiguration: If a required setting is absent.
        """
        site_url = _clean_url(data.get("site_url"))
        if not site_url:
            raise MissingConfiguration("site_url")

        api_url = _clean_url(data.get("api_url"))
        license_api_url = _clean_url(data.get("license_api_url"))
        if not license_api_url:
            if not api_url:
                raise MissingConfiguration("license_api_url")
            license_api_url = api_url + LICENSE_API_PATH

        versions_api_url = _clean_url(data.get("versions_api_url"))
        if not versions_api_url:
            raise MissingConfiguration("versions_api_url")

        prefix = data.get("prefix") or data.get("option_name")
        if not prefix:
            prefix = _prefix_from_url(api_url or license_api_url)

        headers = data.get("api_headers") or {}
        if not isinstance(headers, dict):
            raise ValueError("api_headers must be a table of header names to values")

        return cls(
            site_url=site_url,
            license_api_url=license_api_url,
            versions_api_url=versions_api_url,
            api_headers={str(k): str(v) for k, v in headers.items()},
            prefix=sanitize_key(prefix),
            timeout=int(data.get("timeout", DEFAULT_TIMEOUT)),
        )


def load_config(path: Path, overrides: Optional[dict[str, Any]] = None) -> UpdaterConfig:
    """Load the updater configuration from a TOML file.

    Args:
        path: Path to the TOML file.
        overrides: Values taking precedence over the file (e.g. CLI options).
            ``None`` values are ignored.

    Returns:
        A validated UpdaterConfig.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid TOML.
        MissingConfiguration: If a required setting is absent.
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {path}: {e}") from e

    # pyproject.toml style
    table = data.get("tool", {}).get("addon-updates")
    if table is not None:
        data = table

    merged = dict(data)
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value

    return UpdaterConfig.from_mapping(merged)


def sanitize_key(key: str) -> str:
    """Lowercase a key and drop anything but letters, digits, ``_`` and ``-``."""
    return re.sub(r"[^a-z0-9_\-]", "", key.lower())


def _clean_url(value: Any) -> str:
    if not value:
        return ""
    return str(value).strip().rstrip("/")


def _prefix_from_url(url: str) -> str:
    host = urlparse(url).hostname or ""
    return host.replace(".", "_")
