"""Store for projects, tasks and planning records kept as JSON files on disk."""

from __future__ import annotations

import json
import os
import threading
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Mapping, TypeVar

from compass.domain.discovery import Decision, Discovery, PlanningSession, PlanningSessionStatus
from compass.domain.project import Project
from compass.domain.task import Task, TaskFilter, TaskStatus
from compass.errors import AlreadyExistsError, CompassError, NotFoundError

_E = TypeVar("_E", bound=Enum)
_T = TypeVar("_T")

_ROOT_DIR = ".compass"
_PROJECTS_DIR = "projects"
_CONFIG_FILE = "config.json"
_PROJECT_FILE = "project.json"
_TASKS_FILE = "tasks.json"
_SESSIONS_FILE = "sessions.json"
_DISCOVERIES_FILE = "discoveries.json"
_DECISIONS_FILE = "decisions.json"
_PROJECT_SUBDIRS = ("planning", "index")


def _as_enum(enum_type: type[_E], value: Any) -> _E | None:
    if isinstance(value, enum_type):
        return value
    if isinstance(value, str):
        try:
            return enum_type(value)
        except ValueError:
            return None
    return None


def _save_json(path: Path, data: Any) -> None:
    """Write ``data`` as indented JSON, replacing the file atomically."""
    temp_path = path.with_name(path.name + ".tmp")
    try:
        with temp_path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2, ensure_ascii=False)
            handle.write("\n")
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
    os.replace(temp_path, path)


def _load_json(path: Path) -> Any:
    """Read JSON from ``path``; a missing file raises FileNotFoundError."""
    with path.open("r", encoding="utf-8") as handle:
        try:
            return json.load(handle)
        except json.JSONDecodeError as exc:
            raise CompassError(f"invalid JSON in {path}: {exc}") from exc


class FileStorage:
    """Keeps data under ``<base_path>/.compass``, one directory per project."""

    def __init__(self, base_path: str | os.PathLike[str]) -> None:
        self.base_path = Path(base_path)
        self._lock = threading.RLock()
        try:
            self._initialize()
        except OSError as exc:
            raise CompassError(f"failed to initialize file storage: {exc}") from exc

    # Layout

    @property
    def _root(self) -> Path:
        return self.base_path / _ROOT_DIR

    @property
    def _projects_dir(self) -> Path:
        return self._root / _PROJECTS_DIR

    @property
    def _config_path(self) -> Path:
        return self._root / _CONFIG_FILE

    def _initialize(self) -> None:
        self._projects_dir.mkdir(parents=True, exist_ok=True)
        if not self._config_path.exists():
            _save_json(self._config_path, {})

    def _project_dir(self, project_id: str) -> Path:
        return self._projects_dir / project_id

    def _ensure_project_dir(self, project_id: str) -> None:
        directory = self._project_dir(project_id)
        for subdir in _PROJECT_SUBDIRS:
            (directory / subdir).mkdir(parents=True, exist_ok=True)

    def _load_list(self, path: Path, build: Callable[[dict[str, Any]], _T]) -> list[_T]:
        try:
            data = _load_json(path)
        except FileNotFoundError:
            return []
        return [build(item) for item in data or []]

    def _project_ids(self) -> list[str]:
        return [project.id for project in self.list_projects()]

    # Tasks

    def _tasks_path(self, project_id: str) -> Path:
        return self._project_dir(project_id) / _TASKS_FILE

    def _load_tasks(self, project_id: str) -> list[Task]:
        return self._load_list(self._tasks_path(project_id), Task.from_dict)

    def _save_tasks(self, project_id: str, tasks: list[Task]) -> None:
        _save_json(self._tasks_path(project_id), [task.to_dict() for task in tasks])

    def _readable_tasks(self) -> list[tuple[str, list[Task]]]:
        """Tasks of every known project, skipping files that cannot be read."""
        loaded = []
        for project_id in self._project_ids():
            try:
                loaded.append((project_id, self._load_tasks(project_id)))
            except (CompassError, OSError, ValueError, TypeError):
                continue
        return loaded

    def create_task(self, task: Task) -> None:
        with self._lock:
            self._ensure_project_dir(task.project_id)
            tasks = self._load_tasks(task.project_id)
            if any(existing.id == task.id for existing in tasks):
                raise AlreadyExistsError(f"task with ID {task.id} already exists")
            tasks.append(task)
            self._save_tasks(task.project_id, tasks)

    def update_task(self, task_id: str, updates: Mapping[str, Any]) -> Task:
        """Apply title, description and status updates; other keys are ignored."""
        with self._lock:
            for project_id, tasks in self._readable_tasks():
                for position, task in enumerate(tasks):
                    if task.id != task_id:
                        continue
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
                    tasks[position] = updated
                    self._save_tasks(project_id, tasks)
                    return updated
            raise NotFoundError(f"task with ID {task_id} not found")

    def get_task(self, task_id: str) -> Task:
        with self._lock:
            for _, tasks in self._readable_tasks():
                for task in tasks:
                    if task.id == task_id:
                        return task
            raise NotFoundError(f"task with ID {task_id} not found")

    def list_tasks(self, task_filter: TaskFilter | None = None) -> list[Task]:
        task_filter = task_filter or TaskFilter()
        with self._lock:
            if task_filter.project_id is not None:
                tasks = self._load_tasks(task_filter.project_id)
            else:
                tasks = [task for _, loaded in self._readable_tasks() for task in loaded]
            return [task for task in tasks if task_filter.matches(task)]

    def delete_task(self, task_id: str) -> None:
        with self._lock:
            for project_id, tasks in self._readable_tasks():
                remaining = [task for task in tasks if task.id != task_id]
                if len(remaining) != len(tasks):
                    self._save_tasks(project_id, remaining)
                    return
            raise NotFoundError(f"task with ID {task_id} not found")

    # Projects

    def _project_path(self, project_id: str) -> Path:
        return self._project_dir(project_id) / _PROJECT_FILE

    def create_project(self, project: Project) -> None:
        with self._lock:
            self._ensure_project_dir(project.id)
            path = self._project_path(project.id)
            if path.exists():
                raise AlreadyExistsError(f"project with ID {project.id} already exists")
            _save_json(path, project.to_dict())

    def get_project(self, project_id: str) -> Project:
        with self._lock:
            try:
                data = _load_json(self._project_path(project_id))
            except FileNotFoundError:
                raise NotFoundError(f"project with ID {project_id} not found") from None
            return Project.from_dict(data)

    def list_projects(self) -> list[Project]:
        """Every project whose file can be read, ordered by directory name."""
        with self._lock:
            projects = []
            for directory in sorted(self._projects_dir.iterdir()):
                path = directory / _PROJECT_FILE
                if not directory.is_dir() or not path.is_file():
                    continue
                try:
                    projects.append(Project.from_dict(_load_json(path)))
                except (CompassError, OSError, ValueError, TypeError, AttributeError):
                    continue
            return projects

    def set_current_project(self, project_id: str) -> None:
        with self._lock:
            self.get_project(project_id)
            _save_json(self._config_path, {"currentProject": project_id})

    def get_current_project(self) -> Project:
        with self._lock:
            config = _load_json(self._config_path) or {}
            current = config.get("currentProject")
            if current is None:
                raise CompassError("no current project set")
            return self.get_project(current)

    # Planning sessions

    def _sessions_path(self, project_id: str) -> Path:
        return self._project_dir(project_id) / "planning" / _SESSIONS_FILE

    def _load_sessions(self, project_id: str) -> list[PlanningSession]:
        return self._load_list(self._sessions_path(project_id), PlanningSession.from_dict)

    def _save_sessions(self, project_id: str, sessions: list[PlanningSession]) -> None:
        path = self._sessions_path(project_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        _save_json(path, [session.to_dict() for session in sessions])

    def _readable_sessions(self) -> list[tuple[str, list[PlanningSession]]]:
        loaded = []
        for project_id in self._project_ids():
            try:
                loaded.append((project_id, self._load_sessions(project_id)))
            except (CompassError, OSError, ValueError, TypeError):
                continue
        return loaded

    def create_planning_session(self, session: PlanningSession) -> None:
        with self._lock:
            self._ensure_project_dir(session.project_id)
            sessions = self._load_sessions(session.project_id)
            if any(existing.id == session.id for existing in sessions):
                raise AlreadyExistsError(
                    f"planning session with ID {session.id} already exists"
                )
            sessions.append(session)
            self._save_sessions(session.project_id, sessions)

    def get_planning_session(self, session_id: str) -> PlanningSession:
        with self._lock:
            for _, sessions in self._readable_sessions():
                for session in sessions:
                    if session.id == session_id:
                        return session
            raise NotFoundError(f"planning session with ID {session_id} not found")

    def list_planning_sessions(self, project_id: str) -> list[PlanningSession]:
        with self._lock:
            return self._load_sessions(project_id)

    def update_planning_session(
        self, session_id: str, updates: Mapping[str, Any]
    ) -> PlanningSession:
        """Apply status and task-list updates; other keys are ignored."""
        with self._lock:
            for project_id, sessions in self._readable_sessions():
                for position, session in enumerate(sessions):
                    if session.id != session_id:
                        continue
                    changes: dict[str, Any] = {}
                    status = _as_enum(PlanningSessionStatus, updates.get("status"))
                    if status is not None:
                        changes["status"] = status
                    tasks = updates.get("tasks")
                    if isinstance(tasks, (list, tuple)) and all(
                        isinstance(t, str) for t in tasks
                    ):
                        changes["tasks"] = list(tasks)
                    updated = replace(session, **changes)
                    sessions[position] = updated
                    self._save_sessions(project_id, sessions)
                    return updated
            raise NotFoundError(f"planning session with ID {session_id} not found")

    # Discoveries

    def _discoveries_path(self, project_id: str) -> Path:
        return self._project_dir(project_id) / _DISCOVERIES_FILE

    def create_discovery(self, discovery: Discovery) -> None:
        with self._lock:
            self._ensure_project_dir(discovery.project_id)
            path = self._discoveries_path(discovery.project_id)
            discoveries = self._load_list(path, Discovery.from_dict)
            discoveries.append(discovery)
            _save_json(path, [item.to_dict() for item in discoveries])

    def list_discoveries(self, project_id: str) -> list[Discovery]:
        with self._lock:
            return self._load_list(self._discoveries_path(project_id), Discovery.from_dict)

    # Decisions

    def _decisions_path(self, project_id: str) -> Path:
        return self._project_dir(project_id) / _DECISIONS_FILE

    def create_decision(self, decision: Decision) -> None:
        with self._lock:
            self._ensure_project_dir(decision.project_id)
            path = self._decisions_path(decision.project_id)
            decisions = self._load_list(path, Decision.from_dict)
            decisions.append(decision)
            _save_json(path, [item.to_dict() for item in decisions])

    def list_decisions(self, project_id: str) -> list[Decision]:
        with self._lock:
            return self._load_list(self._decisions_path(project_id), Decision.from_dict)