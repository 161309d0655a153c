"""Options set once by the CLI callback and read by the commands."""

from __future__ import annotations

from pathlib import Path


class _Context:
    """Per-invocation CLI state."""

    def __init__(self) -> None:
        # From --config; None means discover gantry_config.yaml
        self.config_path: Path | None = None


_context = _Context()


def get_config_path() -> Path | None:
    """Config file named with ``--config``, or None to fall back to discovery."""
    return _context.config_path


def set_config_path(path: Path | None) -> None:
    """Record the ``--config`` value for load_effective_config()."""
    _context.config_path = path
