"""Version comparison used to decide whether an update is available."""

import logging
from functools import lru_cache
from typing import Optional

from packaging.version import InvalidVersion, Version

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1024)
def parse_version(value: Optional[str]) -> Optional[Version]:
    """Parse a dotted version string, accepting a leading ``v``.

    Pre-release suffixes such as ``-beta`` or ``-rc.1`` are understood.
    Any other ``-<suffix>`` (``-nightly``, ``-snapshot``, ``-1``) marks a
    build that precedes its release, so it sorts below every pre-release
    of the same release.

    Args:
        value: Raw version string.

    Returns:
        Parsed Version, or None if the string is empty or unparseable.
    """
    if not value:
        return None

    value = value.strip()
    try:
        version = Version(value)
    except InvalidVersion:
        version = None

    if version is not None and not (
        "-" in value and (version.is_postrelease or version.local)
    ):
        return version

    release, _, suffix = value.partition("-")
    try:
        base = Version(release)
    except InvalidVersion:
        logger.debug("Could not parse version: %s", value)
        return None

    if not suffix:
        return base

    return Version(f"{base.base_version}.dev0")


def is_newer(installed: Optional[str], remote: Optional[str]) -> bool:
    """Return True if ``remote`` is strictly newer than ``installed``.

    Unparseable versions on either side are never considered newer.
    """
    remote_version = parse_version(remote)
    installed_version = parse_version(installed)

    if remote_version is None or installed_version is None:
        return False

    return remote_version > installed_version
