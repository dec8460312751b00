"""Value types used when retrieving and searching task context."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from compass.domain.project import Project
from compass.domain.task import Task


@dataclass
class TaskContext:
    task: Task
    project: Project | None
    dependencies: list[Task] = field(default_factory=list)
    children: list[Task] = field(default_factory=list)
    related: list[Task] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "Task": self.task.to_dict(),
            "Project": self.project.to_dict() if self.project is not None else None,
            "Dependencies": [task.to_dict() for task in self.dependencies],
            "Children": [task.to_dict() for task in self.children],
            "Related": [task.to_dict() for task in self.related],
        }


@dataclass
class SearchOptions:
    project_id: str | None = None
    limit: int = 0
    offset: int = 0


@dataclass
class SearchResult:
    task: Task
    score: float
    match_type: str
    snippet: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "task": self.task.to_dict(),
            "score": self.score,
            "matchType": self.match_type,
            "snippet": self.snippet,
        }


@dataclass
class NextTaskCriteria:
    project_id: str
    exclude: list[str] = field(default_factory=list)


@dataclass
class SufficiencyReport:
    task_id: str
    sufficient: bool
    missing: list[str] = field(default_factory=list)
    stale: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "taskId": self.task_id,
            "sufficient": self.sufficient,
            "missing": list(self.missing),
            "stale": list(self.stale),
        }