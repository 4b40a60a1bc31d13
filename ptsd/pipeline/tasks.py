"""Priority task queue backed by .ptsd/tasks.yaml."""

from __future__ import annotations

from typing import Optional

from ptsd.errors import UserError, ValidationError
from ptsd.models import Priority, Task, TaskStatus
from ptsd.store import ProjectStore


def parse_priority(text: str) -> Priority:
    try:
        return Priority((text or "").strip().upper())
    except ValueError:
        raise UserError(f"invalid priority {text!r}: use A, B or C")


def parse_task_status(text: str) -> TaskStatus:
    try:
        return TaskStatus((text or "").strip().upper())
    except ValueError:
        raise ValidationError(f"invalid task status {text!r}: use TODO, WIP or DONE")


def next_task_id(tasks: list[Task]) -> str:
    """One past the highest numeric suffix; IDs never get reused."""
    return f"T-{max((t.number for t in tasks), default=0) + 1}"


def queue_order(tasks: list[Task]) -> list[Task]:
    """Sort by priority rank (A first), then by ascending task number."""
    return sorted(tasks, key=lambda t: (t.priority.rank, t.number))


class TaskQueue:
    """Adds, lists, updates and selects tasks. Tasks are never deleted."""

    def __init__(self, store: ProjectStore) -> None:
        self.store = store

    def _log(self, event_type: str, data: Optional[dict] = None, level: str = "info") -> None:
        if self.store.logger:
            self.store.logger.log(event_type, data, level=level)

    def add(self, feature_id: str, title: str, priority: str | Priority = Priority.B) -> Task:
        """
        Append a TODO task.

        Raises:
            UserError: Empty title or invalid priority.
            ValidationError: The feature is not declared.
        """
        if not (title or "").strip():
            raise UserError("task title must not be empty")
        if not isinstance(priority, Priority):
            priority = parse_priority(priority)
        if self.store.get_feature(feature_id) is None:
            raise ValidationError(f"feature {feature_id} not found")

        tasks = self.store.load_tasks()
        task = Task(
            id=next_task_id(tasks),
            feature=feature_id,
            title=title.strip(),
            priority=priority,
        )
        tasks.append(task)
        self.store.save_tasks(tasks)
        self._log("task_added", {"task": task.id, "feature": feature_id})
        return task

    def list(self, feature: Optional[str] = None, status: Optional[str] = None) -> list[Task]:
        """Tasks in file order, optionally filtered by feature and status."""
        wanted = parse_task_status(status) if status else None
        return [
            t for t in self.store.load_tasks()
            if (feature is None or t.feature == feature)
            and (wanted is None or t.status == wanted)
        ]

    def next(self, limit: int = 1) -> list[Task]:
        """
        The most urgent TODO tasks.

        Args:
            limit: Maximum number of tasks; 0 or less means all.
        """
        todo = queue_order([t for t in self.store.load_tasks() if t.status == TaskStatus.TODO])
        return todo[:limit] if limit > 0 else todo

    def update(self, task_id: str, status: str) -> Task:
        """
        Change a task's status.

        Raises:
            ValidationError: Unknown task or invalid status.
        """
        new_status = parse_task_status(status)
        tasks = self.store.load_tasks()
        for task in tasks:
            if task.id == task_id:
                task.status = new_status
                self.store.save_tasks(tasks)
                self._log("task_updated", {"task": task_id, "status": new_status.value})
                return task
        raise ValidationError(f"task {task_id} not found")
