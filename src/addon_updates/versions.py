"""Batched version checks with fingerprint-validated caching.

The identifiers of every installed component are sent in a single request.
The answer is cached under one fixed key together with a fingerprint of
the batch and the active license key; a cached answer is reused only while
that fingerprint still matches, so installing or removing a component or
changing the license implicitly invalidates it.

Remote failures never propagate out of ``get_update_data``: they are stored
as an empty, short-lived entry so that callers fall back to "no updates".
"""

import hashlib
import hmac
import json
import logging
from typing import Any, Optional

from addon_updates.cache import (
    DAY_IN_SECONDS,
    MINUTE_IN_SECONDS,
    BaseCacheStore,
    Clock,
    utc_now,
)
from addon_updates.config import UpdaterConfig, sanitize_key
from addon_updates.errors import ApplicationError, UpdatesError
from addon_updates.inventory import BaseInventory
from addon_updates.licenses import read_active_key
from addon_updates.models import (
    ErrorInfo,
    UpdateData,
    VersionCheckCacheEntry,
    VersionInfo,
)
from addon_updates.options import OptionStore
from addon_updates.remote import RemoteClient

logger = logging.getLogger(__name__)

SUCCESS_TTL = DAY_IN_SECONDS
FAILURE_TTL = 30 * MINUTE_IN_SECONDS
COMPONENT_INFO_TTL = 5 * MINUTE_IN_SECONDS

# Per-item error code meaning "no package hosted remotely", not a failure.
DOWNLOAD_NOT_FOUND = "download_file_not_found"


def fingerprint(identifiers: list[str], license_key: Optional[str]) -> str:
    """Hash a batch of identifiers together with the active license key.

    Identifiers are sorted first, so enumeration order does not matter.
    """
    payload = json.dumps(sorted(identifiers), separators=(",", ":"))
    return hashlib.sha256((payload + (license_key or "")).encode("utf-8")).hexdigest()


class VersionCheckEngine:
    """Fetches and caches latest version data for installed components.

    Attributes:
        config: Updater configuration.
        cache: Shared TTL cache.
        options: Option store holding the active license key.
        inventory: Source of installed components.
        remote: Client for the versions endpoint.
        clock: Callable returning the current time.
    """

    def __init__(
        self,
        config: UpdaterConfig,
        cache: BaseCacheStore,
        options: OptionStore,
        inventory: BaseInventory,
        remote: RemoteClient,
        clock: Clock = utc_now,
    ) -> None:
        self.config = config
        self.cache = cache
        self.options = options
        self.inventory = inventory
        self.remote = remote
        self.clock = clock

    @property
    def cache_key(self) -> str:
        return sanitize_key(f"_{self.config.prefix}_update_check")

    @property
    def count_cache_key(self) -> str:
        return sanitize_key(f"_{self.config.prefix}_helper_updates_count")

    def collect_identifiers(self) -> list[str]:
        """Return the distinct, non-empty identifiers of installed components, sorted."""
        return sorted(
            {c.identifier for c in self.inventory.list_components() if c.identifier}
        )

    def current_fingerprint(self) -> Optional[str]:
        """Return the fingerprint of the current batch, or None if nothing is installed."""
        identifiers = self.collect_identifiers()
        if not identifiers:
            return None
        return fingerprint(identifiers, read_active_key(self.options))

    def get_cached_entry(self) -> Optional[VersionCheckCacheEntry]:
        """Read the stored version-check entry without fetching anything."""
        data = self.cache.get(self.cache_key)
        if data is None:
            return None

        try:
            return VersionCheckCacheEntry.from_dict(data)
        except (KeyError, TypeError, ValueError):
            logger.warning("Discarding corrupted version check cache entry")
            return None

    def is_cached_entry_current(self, entry: VersionCheckCacheEntry) -> bool:
        expected = self.current_fingerprint()
        return expected is not None and hmac.compare_digest(
            expected, entry.fingerprint_hash
        )

    async def get_update_data(self) -> UpdateData:
        """Return latest version data for every installed component.

        Returns:
            Mapping identifier -> VersionInfo or ErrorInfo. Identifiers the
            remote did not answer for are absent. Empty if nothing is
            installed or the remote could not be reached.
        """
        identifiers = self.collect_identifiers()
        if not identifiers:
            return {}

        license_key = read_active_key(self.options)
        batch_hash = fingerprint(identifiers, license_key)

        entry = self.get_cached_entry()
        if entry is not None and hmac.compare_digest(batch_hash, entry.fingerprint_hash):
            logger.debug("Using cached version data for %d components", len(identifiers))
            return entry.downloads

        logger.info("Checking %d components for updates", len(identifiers))

        try:
            response = await self.remote.fetch_versions(
                identifiers, license_key, batch_hash
            )
        except UpdatesError as e:
            logger.warning("Version check failed: %s", e.message)
            self._store(
                VersionCheckCacheEntry(
                    fingerprint_hash=batch_hash,
                    fetched_at=self.clock(),
                    downloads={},
                    had_errors=True,
                ),
                FAILURE_TTL,
            )
            return {}

        downloads = self._demultiplex(identifiers, response)
        had_errors = any(isinstance(item, ErrorInfo) for item in downloads.values())

        self._store(
            VersionCheckCacheEntry(
                fingerprint_hash=batch_hash,
                fetched_at=self.clock(),
                downloads=downloads,
                had_errors=had_errors,
            ),
            SUCCESS_TTL,
        )
        return downloads

    def _demultiplex(self, identifiers: list[str], response: dict[str, Any]) -> UpdateData:
        """Map a batched response back onto the requested identifiers."""
        downloads: UpdateData = {}

        for identifier in identifiers:
            item = response.get(identifier)
            if not item:
                continue

            if not isinstance(item, dict):
                logger.warning("Malformed version data for %s", identifier)
                downloads[identifier] = ErrorInfo(
                    message=f"Malformed version data for {identifier}"
                )
                continue

            if item.get("error"):
                error = ErrorInfo.from_api(item["error"])
                logger.warning("Version check error for %s: %s", identifier, error.message)
                downloads[identifier] = error
                continue

            downloads[identifier] = VersionInfo.from_api(item)

        return downloads

    def _store(self, entry: VersionCheckCacheEntry, ttl: int) -> None:
        self.cache.set(self.cache_key, entry.to_dict(), ttl)
        self.cache.delete(self.count_cache_key)

    def flush(self) -> None:
        """Delete the cached version data and the derived update count."""
        logger.debug("Flushing cached update data")
        self.cache.delete(self.cache_key)
        self.cache.delete(self.count_cache_key)

    async def get_component_info(self, identifier: str) -> Optional[VersionInfo]:
        """Look up full version information for a single component.

        Args:
            identifier: Remote identifier or local slug of the component.

        Returns:
            VersionInfo for the component, or None if the remote hosts no
            package for it.

        Raises:
            ApplicationError: With code ``plugins_api_failed`` if the lookup
                fails or the remote reports an error for the component.
        """
        component = self.inventory.find(identifier)
        if component is not None:
            identifier = component.identifier

        license_key = read_active_key(self.options)
        params = self.remote.versions_params([identifier], license_key)
        digest = hashlib.sha256(
            (self.config.versions_api_url + json.dumps(params, sort_keys=True)).encode(
                "utf-8"
            )
        ).hexdigest()[:32]
        cache_key = sanitize_key(f"{self.config.prefix}_versions_{digest}")

        response = self.cache.get(cache_key)
        if response is None:
            try:
                response = await self.remote.fetch_versions([identifier], license_key)
            except UpdatesError as e:
                raise ApplicationError("plugins_api_failed", e.message) from e
            self.cache.set(cache_key, response, COMPONENT_INFO_TTL)

        item = response.get(identifier)
        if not item or not isinstance(item, dict):
            raise ApplicationError("plugins_api_failed", "Error fetching downloadable file")

        if item.get("error"):
            error = ErrorInfo.from_api(item["error"])
            if error.code == DOWNLOAD_NOT_FOUND:
                return None
            raise ApplicationError("plugins_api_failed", error.message)

        info = VersionInfo.from_api(item)
        info.slug = component.slug if component is not None else identifier
        return info
