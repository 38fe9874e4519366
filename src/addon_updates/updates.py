"""Reconciles cached remote versions with installed versions."""

import logging

from addon_updates.cache import HOUR_IN_SECONDS, BaseCacheStore, Clock, utc_now
from addon_updates.models import (
    Component,
    UpdateCountCacheEntry,
    UpdateData,
    UpdateOffer,
    VersionInfo,
)
from addon_updates.versioning import is_newer
from addon_updates.versions import VersionCheckEngine

logger = logging.getLogger(__name__)

COUNT_TTL = 12 * HOUR_IN_SECONDS


def component_has_update(component: Component, data: UpdateData) -> bool:
    info = data.get(component.identifier)
    if not isinstance(info, VersionInfo):
        return False
    return is_newer(component.installed_version, info.version)


class UpdateReconciler:
    """Decides which installed components have a newer remote version.

    Attributes:
        versions: Version check engine providing remote version data.
        cache: Shared TTL cache holding the derived update count.
        clock: Callable returning the current time.
    """

    def __init__(
        self,
        versions: VersionCheckEngine,
        cache: BaseCacheStore,
        clock: Clock = utc_now,
    ) -> None:
        self.versions = versions
        self.cache = cache
        self.clock = clock

    @property
    def inventory(self):
        return self.versions.inventory

    def get_update_count(self) -> int:
        """Return the number of components with an available update.

        Only reads cached data: returns 0 if no version check has been
        stored yet, and never triggers a remote request.
        """
        entry = self.versions.get_cached_entry()
        if entry is None:
            return 0

        cached = self.cache.get(self.versions.count_cache_key)
        if cached is not None:
            try:
                return UpdateCountCacheEntry.from_dict(cached).count
            except (KeyError, TypeError, ValueError):
                logger.warning("Discarding corrupted update count cache entry")

        # Data for a different batch or license says nothing about this one.
        if not self.versions.is_cached_entry_current(entry):
            return 0

        count = sum(
            1
            for component in self.inventory.list_components()
            if component_has_update(component, entry.downloads)
        )

        self.cache.set(
            self.versions.count_cache_key,
            UpdateCountCacheEntry(count=count, computed_at=self.clock()).to_dict(),
            COUNT_TTL,
        )
        return count

    async def has_update(self, identifier: str) -> bool:
        """Check whether one component has an available update.

        Args:
            identifier: Remote identifier or local slug of the component.

        Returns:
            False if no version check has been stored yet, the component is
            not installed, or its remote version is not newer.
        """
        if self.versions.get_cached_entry() is None:
            return False

        component = self.inventory.find(identifier)
        if component is None:
            return False

        data = await self.versions.get_update_data()
        return component_has_update(component, data)

    async def get_update_offers(self) -> list[UpdateOffer]:
        """Reconcile every installed component against remote version data.

        Returns:
            One UpdateOffer per component the remote reported a version for,
            sorted by slug.
        """
        data = await self.versions.get_update_data()
        offers = []

        for component in self.inventory.list_components():
            info = data.get(component.identifier)
            if not isinstance(info, VersionInfo) or not info.version:
                continue

            offers.append(
                UpdateOffer(
                    component=component,
                    info=info,
                    has_update=is_newer(component.installed_version, info.version),
                )
            )

        return sorted(offers, key=lambda o: o.component.slug)

    def on_update_applied(self) -> None:
        """Flush cached data after an update package has been installed."""
        self.versions.flush()
