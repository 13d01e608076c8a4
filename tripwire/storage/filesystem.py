"""Filesystem registry store.

Stores each project's registry as one JSON document with atomic writes.
"""

from __future__ import annotations

import json
import logging
import re
import tempfile
from pathlib import Path

from ..learn.models import Registry

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def registry_filename(project_id: str) -> str:
    """Deterministic file name for a project id."""
    return f"{_UNSAFE_CHARS.sub('_', project_id)}-errors.json"


class FileSystemRegistryStore:
    """Filesystem-backed registry storage using atomic JSON writes.

    Characteristics:
    - One ``<project>-errors.json`` file per project under ``root``
    - Atomic writes via temp file + rename (POSIX)
    - Creates the root directory on first save
    - Falls back to an empty registry if the file is missing or corrupt
    - Write failures (disk full, permission denied) propagate

    Args:
        root: Directory holding the registry files.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, project_id: str) -> Path:
        return self._root / registry_filename(project_id)

    def load(self, project_id: str) -> Registry:
        path = self.path_for(project_id)
        if not path.exists():
            return Registry(project_id=project_id)

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            return Registry.from_dict(data)
        except (
            json.JSONDecodeError,
            OSError,
            KeyError,
            TypeError,
            ValueError,
            AttributeError,
        ) as e:
            logger.warning("Error loading registry from %s, starting fresh: %s", path, e)
            return Registry(project_id=project_id)

    def save(self, project_id: str, registry: Registry) -> None:
        path = self.path_for(project_id)
        self._root.mkdir(parents=True, exist_ok=True)

        json_data = json.dumps(registry.to_dict(), indent=2)

        fd, tmp_path = tempfile.mkstemp(dir=self._root, prefix=".registry_", suffix=".tmp")
        try:
            with open(fd, "w", encoding="utf-8") as f:
                f.write(json_data)
            Path(tmp_path).replace(path)
        except Exception:
            try:
                Path(tmp_path).unlink()
            except OSError:
                pass
            raise
