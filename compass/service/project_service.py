"""Project operations delegated to a storage backend."""

from __future__ import annotations

from typing import Protocol

from compass.domain.project import Project


class ProjectStorage(Protocol):
    def create_project(self, project: Project) -> None: ...
    def get_project(self, project_id: str) -> Project: ...
    def list_projects(self) -> list[Project]: ...
    def set_current_project(self, project_id: str) -> None: ...
    def get_current_project(self) -> Project: ...


class ProjectService:
    """Creates and looks up projects and tracks the current one."""

    def __init__(self, storage: ProjectStorage) -> None:
        self.storage = storage

    def create(self, project: Project) -> None:
        self.storage.create_project(project)

    def get(self, project_id: str) -> Project:
        return self.storage.get_project(project_id)

    def list(self) -> list[Project]:
        return self.storage.list_projects()

    def set_current(self, project_id: str) -> None:
        self.storage.set_current_project(project_id)

    def get_current(self) -> Project:
        return self.storage.get_current_project()