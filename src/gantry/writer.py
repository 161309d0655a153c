"""Round-trip writer applying computed dates back to a project file.

Uses ruamel.yaml so comments, key order and formatting of the project file
survive the update.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML

from .exceptions import ParseError
from .logger import get_logger
from .models import TaskUpdate

logger = get_logger()


def _load_round_trip(file_path: Path) -> tuple[YAML, Any]:
    yaml_rt = YAML()
    yaml_rt.preserve_quotes = True  # type: ignore[assignment]

    if not file_path.exists():
        raise ParseError(f"File not found: {file_path}")
    with file_path.open(encoding="utf-8") as f:
        data: Any = yaml_rt.load(f)  # type: ignore[no-untyped-call]

    if not isinstance(data, dict) or not isinstance(data.get("tasks"), dict):
        raise ParseError(f"No 'tasks' section in {file_path}")
    return yaml_rt, data


def _dump(yaml_rt: YAML, data: Any, file_path: Path) -> None:
    with file_path.open("w", encoding="utf-8") as f:
        yaml_rt.dump(data, f)  # type: ignore[no-untyped-call]


def write_task_updates(file_path: Path | str, updates: Iterable[TaskUpdate]) -> int:
    """Apply task updates to the start/end dates in a project file.

    Only updates whose dates differ from the file are written. When several
    updates target the same task, the last one wins.

    Args:
        file_path: Project YAML file to rewrite in place
        updates: Updates to apply

    Returns:
        Number of tasks whose dates were changed

    Raises:
        ParseError: If the file has no tasks section or lacks an updated task
    """
    path = Path(file_path)
    yaml_rt, data = _load_round_trip(path)
    tasks = data["tasks"]

    latest: dict[str, TaskUpdate] = {}
    for update in updates:
        latest[update.id] = update

    changed = 0
    for task_id, update in latest.items():
        if task_id not in tasks:
            raise ParseError(f"Task '{task_id}' not found in {path}")
        if tasks[task_id] is None:
            tasks[task_id] = {}
        entry = tasks[task_id]

        current = (entry.get("start_date"), entry.get("end_date"))
        if current == (update.start_date, update.end_date):
            continue

        entry["start_date"] = update.start_date
        entry["end_date"] = update.end_date
        changed += 1
        logger.changes(f"  Wrote {task_id}: {update.start_date} .. {update.end_date}")

    if changed:
        _dump(yaml_rt, data, path)
    return changed


def write_critical_flags(file_path: Path | str, flags: Iterable[tuple[str, bool]]) -> int:
    """Store critical-path flags in a project file.

    Args:
        file_path: Project YAML file to rewrite in place
        flags: (task_id, is_critical) pairs, as returned by
            update_critical_path_flags

    Returns:
        Number of tasks updated
    """
    path = Path(file_path)
    yaml_rt, data = _load_round_trip(path)
    tasks = data["tasks"]

    changed = 0
    for task_id, is_critical in flags:
        if task_id not in tasks:
            continue
        if tasks[task_id] is None:
            tasks[task_id] = {}
        tasks[task_id]["is_critical_path"] = is_critical
        changed += 1

    if changed:
        _dump(yaml_rt, data, path)
    return changed
