"""Base protocol for registry stores.

The interface is narrow: load a project's registry, save it
back. Detection, similarity and synthesis never see the storage medium, so a
transactional or versioned backend can replace the default without touching
them.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..learn.models import Registry


@runtime_checkable
class RegistryStore(Protocol):
    """Protocol for per-project registry persistence.

    Design Principles:
    - Two operations only: load and save
    - Every save replaces the whole registry; there are no partial writes
    - Backends do not lock. Concurrent writers to one project lose updates
      (last writer wins), so callers must serialize invocations per project.
    """

    def load(self, project_id: str) -> Registry:
        """Load a project's registry.

        Returns:
            The stored registry, or a fresh empty one if nothing usable is
            stored for ``project_id``.
        """
        ...

    def save(self, project_id: str, registry: Registry) -> None:
        """Replace the stored registry for ``project_id``.

        Raises:
            OSError: The storage medium rejected the write. Propagated
                unchanged.
        """
        ...
