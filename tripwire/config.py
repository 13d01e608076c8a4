"""Central configuration for Tripwire.

Usage:
    from tripwire.config import LEARN_DEFAULTS

    registry_dir = LEARN_DEFAULTS.registry_dir

    # Or use environment variables to override at runtime:
    # TRIPWIRE_REGISTRY_DIR=/var/lib/tripwire
    # TRIPWIRE_PAGE_PATH=public/index.html
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _env_path(name: str, default: Path) -> Path:
    value = os.environ.get(name)
    return Path(value).expanduser() if value else default


@dataclass
class LearnConfig:
    """Defaults for the registry location and generated test layout.

    Environment variables can override any path default:
    - TRIPWIRE_REGISTRY_DIR
    - TRIPWIRE_PROJECT_CONTEXT_DIR
    - TRIPWIRE_PAGE_PATH
    - TRIPWIRE_BROWSER_TEST_FILE
    - TRIPWIRE_PYTHON_TEST_FILE
    - TRIPWIRE_PYTHON_SOURCE_DIR

    Attributes:
        registry_dir: Where ``<project>-errors.json`` registries live.
        project_context_dir: Where ``<project>.json`` files with a
            ``projectPath`` key live; used to find export targets.
        page_path: Page under test for browser checks, relative to the
            generated spec file's project root.
        browser_test_file: Export target for browser checks, relative to the
            project root.
        python_test_file: Export target for interpreter checks.
        python_source_dir: Directory put on ``sys.path`` by the generated
            Python test file header.
        probe_substrings: Global function names containing any of these are
            invoked by the use-before-initialization check.
        probe_limit: Maximum number of functions that check invokes.
    """

    registry_dir: Path = field(
        default_factory=lambda: _env_path(
            "TRIPWIRE_REGISTRY_DIR", Path.home() / ".tripwire" / "error-registry"
        )
    )
    project_context_dir: Path = field(
        default_factory=lambda: _env_path(
            "TRIPWIRE_PROJECT_CONTEXT_DIR", Path.home() / ".tripwire" / "project-context"
        )
    )
    page_path: str = field(
        default_factory=lambda: os.environ.get("TRIPWIRE_PAGE_PATH", "src/frontend/index.html")
    )
    browser_test_file: str = field(
        default_factory=lambda: os.environ.get(
            "TRIPWIRE_BROWSER_TEST_FILE", "tests/frontend/test_regression_errors.spec.js"
        )
    )
    python_test_file: str = field(
        default_factory=lambda: os.environ.get(
            "TRIPWIRE_PYTHON_TEST_FILE", "tests/test_regression_errors.py"
        )
    )
    python_source_dir: str = field(
        default_factory=lambda: os.environ.get("TRIPWIRE_PYTHON_SOURCE_DIR", "src/backend")
    )
    probe_substrings: tuple[str, ...] = ("check", "calculate", "Tab")
    probe_limit: int = 10


# Singleton instance - import this to get defaults
LEARN_DEFAULTS = LearnConfig()
