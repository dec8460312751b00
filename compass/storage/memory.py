"""Thread-safe in-memory store for projects, tasks and planning records."""

from __future__ import annotations

import threading
from dataclasses import replace
from enum import Enum
from typing import Any, Mapping, TypeVar

from compass.domain.discovery import Decision, Discovery, PlanningSession, PlanningSessionStatus
from compass.domain.project import Project
from compass.domain.task import Task, TaskFilter, TaskStatus
from compass.errors import AlreadyExistsError, CompassError, NotFoundError

_E = TypeVar("_E", bound=Enum)


def _as_enum(enum_type: type[_E], value: Any) -> _E | None:
    if isinstance(value, enum_type):
        return value
    if isinstance(value, str):
        try:
            return enum_type(value)
        except ValueError:
            return None
    return None


class MemoryStorage:
    """Keeps everything in dictionaries; nothing survives the process."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._tasks: dict[str, Task] = {}
        self._projects: dict[str, Project] = {}
        self._discoveries: dict[str, Discovery] = {}
        self._decisions: dict[str, Decision] = {}
        self._sessions: dict[str, PlanningSession] = {}
        self._current_project: str | None = None

    # Tasks

    def create_task(self, task: Task) -> None:
        with self._lock:
            if task.id in self._tasks:
                raise AlreadyExistsError(f"task with ID {task.id} already exists")
            self._tasks[task.id] = task

    def update_task(self, task_id: str, updates: Mapping[str, Any]) -> Task:
        """Apply title, description and status updates; other keys are ignored."""
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                raise NotFoundError(f"task with ID {task_id} not found")
            changes: dict[str, Any] = {}
            title = updates.get("title")
            if isinstance(title, str):
                changes["title"] = title
            description = updates.get("description")
            if isinstance(description, str):
                changes["description"] = description
            status = _as_enum(TaskStatus, updates.get("status"))
            if status is not None:
                changes["status"] = status
            updated = replace(task, card=replace(task.card, **changes))
            self._tasks[task_id] = updated
            return updated

    def get_task(self, task_id: str) -> Task:
        with self._lock:
            try:
                return self._tasks[task_id]
            except KeyError:
                raise NotFoundError(f"task with ID {task_id} not found") from None

    def list_tasks(self, task_filter: TaskFilter | None = None) -> list[Task]:
        task_filter = task_filter or TaskFilter()
        with self._lock:
            return [task for task in self._tasks.values() if task_filter.matches(task)]

    def delete_task(self, task_id: str) -> None:
        with self._lock:
            if task_id not in self._tasks:
                raise NotFoundError(f"task with ID {task_id} not found")
            del self._tasks[task_id]

    # Projects

    def create_project(self, project: Project) -> None:
        with self._lock:
            if project.id in self._projects:
                raise AlreadyExistsError(f"project with ID {project.id} already exists")
            self._projects[project.id] = project

    def get_project(self, project_id: str) -> Project:
        with self._lock:
            try:
                return self._projects[project_id]
            except KeyError:
                raise NotFoundError(f"project with ID {project_id} not found") from None

    def list_projects(self) -> list[Project]:
        with self._lock:
            return list(self._projects.values())

    def set_current_project(self, project_id: str) -> None:
        with self._lock:
            if project_id not in self._projects:
                raise NotFoundError(f"project with ID {project_id} not found")
            self._current_project = project_id

    def get_current_project(self) -> Project:
        with self._lock:
            if self._current_project is None:
                raise CompassError("no current project set")
            project = self._projects.get(self._current_project)
            if project is None:
                raise NotFoundError(
                    f"current project with ID {self._current_project} not found"
                )
            return project

    # Discoveries and decisions

    def create_discovery(self, discovery: Discovery) -> None:
        with self._lock:
            self._discoveries[discovery.id] = discovery

    def create_decision(self, decision: Decision) -> None:
        with self._lock:
            self._decisions[decision.id] = decision

    def list_discoveries(self, project_id: str) -> list[Discovery]:
        with self._lock:
            return [d for d in self._discoveries.values() if d.project_id == project_id]

    def list_decisions(self, project_id: str) -> list[Decision]:
        with self._lock:
            return [d for d in self._decisions.values() if d.project_id == project_id]

    # Planning sessions

    def create_planning_session(self, session: PlanningSession) -> None:
        with self._lock:
            if session.id in self._sessions:
                raise AlreadyExistsError(
                    f"planning session with ID {session.id} already exists"
                )
            self._sessions[session.id] = session

    def get_planning_session(self, session_id: str) -> PlanningSession:
        with self._lock:
            try:
                return self._sessions[session_id]
            except KeyError:
                raise NotFoundError(
                    f"planning session with ID {session_id} not found"
                ) from None

    def list_planning_sessions(self, project_id: str) -> list[PlanningSession]:
        with self._lock:
            return [s for s in self._sessions.values() if s.project_id == project_id]

    def update_planning_session(
        self, session_id: str, updates: Mapping[str, Any]
    ) -> PlanningSession:
        """Apply status and task-list updates; other keys are ignored."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise NotFoundError(f"planning session with ID {session_id} not found")
            changes: dict[str, Any] = {}
            status = _as_enum(PlanningSessionStatus, updates.get("status"))
            if status is not None:
                changes["status"] = status
            tasks = updates.get("tasks")
            if isinstance(tasks, (list, tuple)) and all(isinstance(t, str) for t in tasks):
                changes["tasks"] = list(tasks)
            updated = replace(session, **changes)
            self._sessions[session_id] = updated
            return updated