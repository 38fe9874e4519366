"""Base interface for component inventories.

Inventories list the add-ons of one vendor that are installed locally.
They are read on every version check; the result is never cached.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Optional

from addon_updates.models import Component


class BaseInventory(ABC):
    """Abstract base class for component inventories."""

    @abstractmethod
    def list_components(self) -> list[Component]:
        """Return the installed components.

        Returns:
            List of Component objects, in any order.
        """
        ...

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Return a human-readable name for this inventory's source."""
        ...

    def find(self, identifier: str) -> Optional[Component]:
        """Return the component with the given identifier or slug."""
        for component in self.list_components():
            if identifier in (component.identifier, component.slug):
                return component
        return None


class StaticInventory(BaseInventory):
    """Inventory over a fixed list of components."""

    def __init__(self, components: Iterable[Component] = ()) -> None:
        self.components = list(components)

    def list_components(self) -> list[Component]:
        return list(self.components)

    @property
    def source_name(self) -> str:
        return "static"
