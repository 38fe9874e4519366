"""Facade wiring the updater components together.

Hosts create one AddonUpdater per vendor and call its methods at their own
trigger points (scheduled re-check, license action, applied update).
"""

from pathlib import Path
from typing import Optional

from addon_updates.cache import BaseCacheStore, Clock, SqliteCacheStore, utc_now
from addon_updates.config import UpdaterConfig
from addon_updates.inventory import BaseInventory
from addon_updates.licenses import LicenseManager
from addon_updates.options import OptionStore, SqliteOptionStore
from addon_updates.remote import RemoteClient
from addon_updates.updates import UpdateReconciler
from addon_updates.versions import VersionCheckEngine


class AddonUpdater:
    """Entry point bundling license, version check and update reconciliation.

    Attributes:
        config: Validated updater configuration.
        cache: Shared TTL cache store.
        options: Option store holding the license key.
        inventory: Source of installed components.
        remote: HTTP client for the remote service.
        versions: Version check engine.
        licenses: License state manager.
        updates: Update reconciler.
    """

    def __init__(
        self,
        config: UpdaterConfig,
        inventory: BaseInventory,
        cache: Optional[BaseCacheStore] = None,
        options: Optional[OptionStore] = None,
        remote: Optional[RemoteClient] = None,
        clock: Clock = utc_now,
    ) -> None:
        self.config = config
        self.inventory = inventory
        self.cache = cache or SqliteCacheStore(clock=clock)
        self.options = options or SqliteOptionStore(
            config.prefix, getattr(self.cache, "db_path", None)
        )
        self.remote = remote or RemoteClient(config)

        self.versions = VersionCheckEngine(
            config, self.cache, self.options, inventory, self.remote, clock=clock
        )
        self.licenses = LicenseManager(
            config, self.cache, self.options, self.remote, self.versions
        )
        self.updates = UpdateReconciler(self.versions, self.cache, clock=clock)

    @classmethod
    def from_paths(
        cls,
        config: UpdaterConfig,
        inventory: BaseInventory,
        db_path: Optional[Path] = None,
    ) -> "AddonUpdater":
        """Create an updater persisting its state in one SQLite file."""
        cache = SqliteCacheStore(db_path)
        options = SqliteOptionStore(config.prefix, cache.db_path)
        return cls(config, inventory, cache=cache, options=options)

    async def close(self) -> None:
        await self.remote.close()

    async def __aenter__(self) -> "AddonUpdater":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
