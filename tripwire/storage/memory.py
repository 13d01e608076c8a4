"""In-memory registry store for embedding and tests."""

from __future__ import annotations

from typing import Any

from ..learn.models import Registry


class InMemoryRegistryStore:
    """Keeps serialized registries in a dict.

    Registries are stored as their ``to_dict`` form, so callers never share
    mutable state with the store, matching the filesystem store's semantics.
    """

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}

    def load(self, project_id: str) -> Registry:
        data = self._data.get(project_id)
        if data is None:
            return Registry(project_id=project_id)
        return Registry.from_dict(data)

    def save(self, project_id: str, registry: Registry) -> None:
        self._data[project_id] = registry.to_dict()

    def __contains__(self, project_id: object) -> bool:
        return project_id in self._data
