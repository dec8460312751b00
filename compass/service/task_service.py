"""Task operations delegated to a storage backend."""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from compass.domain.task import Task, TaskFilter


class TaskStorage(Protocol):
    def create_task(self, task: Task) -> None: ...
    def update_task(self, task_id: str, updates: Mapping[str, Any]) -> Task: ...
    def get_task(self, task_id: str) -> Task: ...
    def list_tasks(self, task_filter: TaskFilter | None = None) -> list[Task]: ...
    def delete_task(self, task_id: str) -> None: ...


class TaskService:
    """Creates, reads, updates and deletes tasks."""

    def __init__(self, storage: TaskStorage) -> None:
        self.storage = storage

    def create(self, task: Task) -> None:
        self.storage.create_task(task)

    def update(self, task_id: str, updates: Mapping[str, Any]) -> Task:
        return self.storage.update_task(task_id, updates)

    def get(self, task_id: str) -> Task:
        return self.storage.get_task(task_id)

    def list(self, task_filter: TaskFilter | None = None) -> list[Task]:
        return self.storage.list_tasks(task_filter or TaskFilter())

    def delete(self, task_id: str) -> None:
        self.storage.delete_task(task_id)