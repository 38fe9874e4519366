"""Inventories of locally installed components.

This module provides the inventories the updater can read installed
add-ons from.
"""

from pathlib import Path
from typing import Optional

from addon_updates.inventory.base import BaseInventory, StaticInventory
from addon_updates.inventory.installed import InstalledDistributionsInventory
from addon_updates.inventory.manifest import ManifestInventory

__all__ = [
    "BaseInventory",
    "InstalledDistributionsInventory",
    "ManifestInventory",
    "StaticInventory",
    "get_inventory",
]


def get_inventory(
    source: str, identifier_prefix: Optional[str] = None
) -> BaseInventory:
    """Get the inventory for a source string.

    A path to a ``.toml`` manifest selects ManifestInventory; anything of
    the form ``dist:<prefix>`` selects InstalledDistributionsInventory.

    Args:
        source: Manifest path or ``dist:<prefix>``.
        identifier_prefix: Optional prefix for remote identifiers.

    Returns:
        Inventory instance for the given source.

    Raises:
        ValueError: If no inventory can handle the source.
    """
    if source.startswith("dist:"):
        prefix = source[len("dist:"):]
        if not prefix:
            raise ValueError("A distribution prefix is required, e.g. 'dist:acme-'")
        return InstalledDistributionsInventory(prefix, identifier_prefix)

    path = Path(source)
    if ManifestInventory.can_handle(path):
        return ManifestInventory(path, identifier_prefix)

    raise ValueError(
        f"No inventory available for '{source}'. "
        f"Use a .toml manifest or 'dist:<prefix>'"
    )
