"""Inventory read from a TOML manifest.

The manifest lists one ``[[component]]`` table per installed add-on::

    [[component]]
    slug = "myplugin-premium"
    identifier = "my-org/premium"   # optional, defaults to the slug
    version = "1.4.2"
"""

import tomllib
from pathlib import Path
from typing import Optional

from addon_updates.inventory.base import BaseInventory
from addon_updates.models import Component


class ManifestInventory(BaseInventory):
    """Inventory backed by a TOML manifest file.

    Attributes:
        source_path: Path to the manifest.
        identifier_prefix: Optional prefix prepended to slugs that have no
            explicit identifier (e.g. ``"my-org/"``).
    """

    def __init__(self, source_path: Path, identifier_prefix: Optional[str] = None) -> None:
        self.source_path = source_path
        self.identifier_prefix = identifier_prefix or ""

    @classmethod
    def can_handle(cls, path: Path) -> bool:
        return path.suffix == ".toml"

    @property
    def source_name(self) -> str:
        return self.source_path.name

    def list_components(self) -> list[Component]:
        """Read the manifest and return its components.

        Raises:
            FileNotFoundError: If the manifest does not exist.
            ValueError: If the manifest is invalid.
        """
        if not self.source_path.exists():
            raise FileNotFoundError(f"Manifest not found: {self.source_path}")

        try:
            with open(self.source_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in {self.source_path}: {e}") from e

        components: list[Component] = []

        for entry in data.get("component", []):
            if "slug" not in entry:
                raise ValueError(
                    f"Component missing required field 'slug' in {self.source_path}"
                )
            if "version" not in entry:
                raise ValueError(
                    f"Component missing required field 'version' in {self.source_path}"
                )

            slug = str(entry["slug"])
            identifier = entry.get("identifier") or self.identifier_prefix + slug
            components.append(
                Component(
                    identifier=str(identifier),
                    slug=slug,
                    installed_version=str(entry["version"]),
                )
            )

        return components
