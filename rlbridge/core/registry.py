"""Name-keyed registries for pluggable models, learners, environments and activations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

from rlbridge.core.exceptions import RegistryError

T = TypeVar("T")


@dataclass
class Registry(Generic[T]):
    """Maps config names to factories; a name can be bound only once."""

    namespace: str
    _items: dict[str, T] = field(default_factory=dict)

    def register(self, name: str, value: T) -> None:
        if not name:
            raise RegistryError(f"{self.namespace} registry names must be non-empty.")
        if name in self._items:
            raise RegistryError(f"{self.namespace} registry already has item '{name}'.")
        self._items[name] = value

    def setdefault(self, name: str, value: T) -> T:
        """Register ``value`` unless ``name`` is already bound; return the bound item."""

        if name not in self._items:
            self.register(name, value)
        return self._items[name]

    def get(self, name: str) -> T:
        if name not in self._items:
            available = ", ".join(self.keys()) or "<empty>"
            raise RegistryError(f"Unknown {self.namespace} '{name}'. Available: {available}.")
        return self._items[name]

    def __contains__(self, name: object) -> bool:
        return name in self._items

    def __len__(self) -> int:
        return len(self._items)

    def keys(self) -> tuple[str, ...]:
        return tuple(sorted(self._items))
