"""License key state.

The active key is stored locally in the option store. Its remote details
are cached for an hour under a name derived from the key with HMAC, so the
key itself never appears in a cache key. When the remote reports the key
unknown or no longer active on this site, the local key is cleared.

Any change to the stored key flushes the version check cache, because the
key is part of the version check fingerprint.
"""

import hashlib
import hmac
import logging
from typing import TYPE_CHECKING, Optional

from addon_updates.cache import HOUR_IN_SECONDS, BaseCacheStore
from addon_updates.config import UpdaterConfig, sanitize_key
from addon_updates.errors import ApplicationError
from addon_updates.models import ActivationResult, License
from addon_updates.options import OptionStore
from addon_updates.remote import RemoteClient

if TYPE_CHECKING:
    from addon_updates.versions import VersionCheckEngine

logger = logging.getLogger(__name__)

LICENSE_TTL = HOUR_IN_SECONDS

LICENSE_KEY_OPTION = "license_key"
LEGACY_KEYS_OPTION = "active_license_keys"


def read_active_key(options: OptionStore) -> Optional[str]:
    """Return the stored license key without any network access.

    Falls back to the most recent entry of the legacy multi-key list.
    """
    license_key = options.get(LICENSE_KEY_OPTION)

    if not license_key:
        legacy = options.get(LEGACY_KEYS_OPTION)
        if isinstance(legacy, list) and legacy:
            license_key = legacy[-1]

    return str(license_key) if license_key else None


class LicenseManager:
    """Resolves, activates and deactivates the vendor license key.

    Attributes:
        config: Updater configuration.
        cache: Shared TTL cache for license details.
        options: Option store holding the key.
        remote: Client for the license endpoints.
        versions: Version check engine flushed on every key change.
    """

    def __init__(
        self,
        config: UpdaterConfig,
        cache: BaseCacheStore,
        options: OptionStore,
        remote: RemoteClient,
        versions: "VersionCheckEngine",
    ) -> None:
        self.config = config
        self.cache = cache
        self.options = options
        self.remote = remote
        self.versions = versions

    def license_cache_key(self, license_key: str) -> str:
        digest = hmac.new(
            self.config.prefix.encode("utf-8"),
            license_key.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()
        return sanitize_key(f"{self.config.prefix}_license_{digest}")

    def get_active_key(self) -> Optional[str]:
        return read_active_key(self.options)

    def set_active_key(self, license_key: str) -> None:
        """Store a license key locally and flush cached update data."""
        self.options.update(LICENSE_KEY_OPTION, license_key.strip())
        self.versions.flush()

    def clear_active_key(self) -> None:
        """Forget the stored license key and flush cached update data."""
        self.options.update(LICENSE_KEY_OPTION, "")
        if self.options.get(LEGACY_KEYS_OPTION):
            self.options.update(LEGACY_KEYS_OPTION, [])
        self.versions.flush()

    async def get_license_details(self, include_remote: bool = True) -> Optional[License]:
        """Return the active license, optionally resolved remotely.

        Args:
            include_remote: If False, return only the stored key without
                contacting the remote.

        Returns:
            The License, or None if no key is stored or the remote reports
            it inactive on this site (the stored key is then cleared).

        Raises:
            ApplicationError: If the remote rejects the key. A not-found
                error clears the stored key before propagating.
            TransportError, InvalidResponse: If the remote is unreachable.
        """
        license_key = self.get_active_key()
        if not license_key:
            return None

        if not include_remote:
            return License(key=license_key)

        try:
            license = await self.fetch_license_details(license_key)
        except ApplicationError as e:
            if e.is_license_not_found:
                logger.info("License key not found remotely, clearing it")
                self.clear_active_key()
            raise

        if not license.is_active_on_site:
            logger.info("License key was deactivated remotely, clearing it")
            self.clear_active_key()
            return None

        return license

    async def fetch_license_details(self, license_key: str) -> License:
        """Fetch license details from the cache or remotely.

        Raises:
            ApplicationError: With code ``invalid_license`` if the response
                has no license object, or the remote error otherwise.
        """
        cache_key = self.license_cache_key(license_key)
        cached = self.cache.get(cache_key)

        if cached is not None:
            logger.debug("Using cached license details")
            return License.from_details(license_key, cached)

        payload = await self.remote.fetch_license(license_key)
        details = payload.get("license") if isinstance(payload, dict) else None

        if not isinstance(details, dict) or not details:
            raise ApplicationError("invalid_license", "Error fetching your license key.")

        self.cache.set(cache_key, details, LICENSE_TTL)
        return License.from_details(license_key, details)

    async def activate(self, license_key: str) -> ActivationResult:
        """Activate a license key remotely and store it on success.

        Raises:
            ValueError: If the key is empty.
            UpdatesError: If the remote activation fails.
        """
        license_key = license_key.strip()
        if not license_key:
            raise ValueError("License key must not be empty")

        self.cache.delete(self.license_cache_key(license_key))

        payload = await self.remote.activate_license(
            license_key, self.versions.collect_identifiers()
        )
        data = payload if isinstance(payload, dict) else {}

        self.set_active_key(license_key)
        logger.info("License key activated")

        return ActivationResult(
            success=True,
            message=(
                "Your license key has been activated successfully. You will now "
                "receive updates and support for this website."
            ),
            license_key=license_key,
            is_membership=bool(data.get("is_membership")),
            data=data,
        )

    async def deactivate(self) -> ActivationResult:
        """Deactivate the active license key remotely and forget it.

        Raises:
            UpdatesError: If the remote deactivation fails; the key is kept.
        """
        message = (
            "License key deactivated successfully. You will no longer receive "
            "product updates and support for this site."
        )

        license_key = self.get_active_key()
        if not license_key:
            return ActivationResult(success=True, message=message)

        self.cache.delete(self.license_cache_key(license_key))

        payload = await self.remote.deactivate_license(license_key)

        self.clear_active_key()
        logger.info("License key deactivated")

        return ActivationResult(
            success=True,
            message=message,
            license_key=license_key,
            data=payload if isinstance(payload, dict) else {},
        )
