"""In-memory task graph with traversal helpers."""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

from .exceptions import CycleDetectedError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .models import Predecessor, Task


class TaskGraph:
    """Directed graph of tasks connected by predecessor edges.

    Edges point from predecessor to dependent. Edges that reference a task
    outside the graph are dropped, so a graph built from a filtered task list
    only sees the edges among those tasks. Task order is preserved everywhere
    so traversals are deterministic.
    """

    def __init__(self, tasks: Iterable[Task], predecessors: Iterable[Predecessor]):
        """Build the graph.

        Args:
            tasks: Tasks (nodes) of the graph
            predecessors: Predecessor edges; edges to unknown tasks are ignored
        """
        self.tasks: dict[str, Task] = {task.id: task for task in tasks}
        self._incoming: dict[str, list[Predecessor]] = {task_id: [] for task_id in self.tasks}
        self._outgoing: dict[str, list[Predecessor]] = {task_id: [] for task_id in self.tasks}

        for edge in predecessors:
            if edge.task_id not in self.tasks or edge.predecessor_id not in self.tasks:
                continue
            self._incoming[edge.task_id].append(edge)
            self._outgoing[edge.predecessor_id].append(edge)

    def __len__(self) -> int:
        return len(self.tasks)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self.tasks

    def incoming(self, task_id: str) -> list[Predecessor]:
        """Edges whose dependent is task_id."""
        return self._incoming.get(task_id, [])

    def outgoing(self, task_id: str) -> list[Predecessor]:
        """Edges whose predecessor is task_id."""
        return self._outgoing.get(task_id, [])

    def predecessors(self, task_id: str) -> list[str]:
        """IDs of the direct predecessors of task_id."""
        return [edge.predecessor_id for edge in self.incoming(task_id)]

    def successors(self, task_id: str) -> list[str]:
        """IDs of the direct dependents of task_id."""
        return [edge.task_id for edge in self.outgoing(task_id)]

    def roots(self) -> list[str]:
        """Tasks with no predecessors."""
        return [task_id for task_id in self.tasks if not self._incoming[task_id]]

    def leaves(self) -> list[str]:
        """Tasks with no successors."""
        return [task_id for task_id in self.tasks if not self._outgoing[task_id]]

    def topological_order(self) -> list[str]:
        """Order tasks so every predecessor comes before its dependents.

        Uses Kahn's algorithm: in-degrees are counted up front and a task is
        released only when all of its predecessors have been emitted.

        Returns:
            Task IDs in predecessor-first order

        Raises:
            CycleDetectedError: If the edges contain a cycle
        """
        in_degree = {task_id: len(edges) for task_id, edges in self._incoming.items()}
        queue: deque[str] = deque(task_id for task_id, degree in in_degree.items() if degree == 0)
        result: list[str] = []

        while queue:
            task_id = queue.popleft()
            result.append(task_id)
            for edge in self._outgoing[task_id]:
                in_degree[edge.task_id] -= 1
                if in_degree[edge.task_id] == 0:
                    queue.append(edge.task_id)

        if len(result) != len(self.tasks):
            blocked = {task_id for task_id, degree in in_degree.items() if degree > 0}
            raise CycleDetectedError(self._find_cycle(blocked))

        return result

    def _find_cycle(self, candidates: set[str]) -> list[str]:
        """Walk predecessor links inside candidates until a task repeats.

        Every task left with a positive in-degree after Kahn's algorithm has at
        least one predecessor that is also blocked, so the walk always closes a
        cycle within len(candidates) steps.
        """
        start = next(task_id for task_id in self.tasks if task_id in candidates)
        path: list[str] = []
        seen: dict[str, int] = {}
        current = start
        while current not in seen:
            seen[current] = len(path)
            path.append(current)
            current = next(p for p in self.predecessors(current) if p in candidates)
        # Reverse so the cycle reads predecessor -> dependent
        cycle = path[seen[current] :]
        cycle.reverse()
        return [*cycle, cycle[0]]
