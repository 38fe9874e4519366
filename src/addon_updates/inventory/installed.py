"""Inventory of installed Python distributions.

Lists every distribution in the current environment whose normalized name
starts with the vendor prefix, the same way a host platform lists the
plugins belonging to one vendor.
"""

import logging
from importlib import metadata
from typing import Optional

from packaging.utils import canonicalize_name

from addon_updates.inventory.base import BaseInventory
from addon_updates.models import Component

logger = logging.getLogger(__name__)


class InstalledDistributionsInventory(BaseInventory):
    """Inventory over installed distributions matching a name prefix.

    Attributes:
        prefix: Normalized distribution name prefix, e.g. ``"acme-"``.
        identifier_prefix: Optional prefix for remote identifiers.
    """

    def __init__(self, prefix: str, identifier_prefix: Optional[str] = None) -> None:
        self.prefix = canonicalize_name(prefix)
        self.identifier_prefix = identifier_prefix or ""

    @property
    def source_name(self) -> str:
        return f"installed distributions ({self.prefix}*)"

    def list_components(self) -> list[Component]:
        components: dict[str, Component] = {}

        for dist in metadata.distributions():
            name = dist.metadata["Name"]
            if not name:
                continue

            slug = canonicalize_name(name)
            if not slug.startswith(self.prefix) or slug in components:
                continue

            components[slug] = Component(
                identifier=self.identifier_prefix + slug,
                slug=slug,
                installed_version=dist.version,
            )

        logger.debug("Found %d installed components", len(components))
        return sorted(components.values(), key=lambda c: c.slug)
