"""Gathers the context around a task and recommends what to work on next."""

from __future__ import annotations

from contextlib import suppress
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable

from compass.domain.context import (
    NextTaskCriteria,
    SearchOptions,
    SearchResult,
    SufficiencyReport,
    TaskContext,
)
from compass.domain.project import Project
from compass.domain.task import Confidence, Task, TaskFilter, TaskStatus
from compass.errors import CompassError
from compass.search.hybrid import HybridSearch
from compass.service.header_generator import HeaderGenerator
from compass.service.project_service import ProjectStorage
from compass.service.task_service import TaskStorage

HEADER_MAX_AGE = timedelta(hours=24)
RECENT_TASK_AGE = timedelta(days=7)
MAX_RELATED = 5
_PUNCTUATION = ".,!?;:()"
_CONFIDENCE_SCORES = {
    Confidence.HIGH: 3.0,
    Confidence.MEDIUM: 1.0,
    Confidence.LOW: 0.0,
}


def extract_words(text: str) -> set[str]:
    """Lower-cased words longer than two characters, punctuation stripped."""
    words = set()
    for field_ in text.lower().split():
        cleaned = field_.strip(_PUNCTUATION)
        if len(cleaned) > 2:
            words.add(cleaned)
    return words


def has_shared_files(task1: Task, task2: Task) -> bool:
    """Tell whether two tasks touch a common file, ignoring case."""
    files = {name.lower() for name in task1.context.files}
    return any(name.lower() in files for name in task2.context.files)


def has_similar_content(task1: Task, task2: Task) -> bool:
    """Tell whether two tasks share at least two words longer than three letters."""
    words1 = extract_words(f"{task1.card.title} {task1.card.description}")
    words2 = extract_words(f"{task2.card.title} {task2.card.description}")
    common = sum(1 for word in words1 & words2 if len(word) > 3)
    return common >= 2


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


@dataclass
class ScoredTask:
    task: Task
    score: float


class ContextRetriever:
    """Answers context, search, next-task and sufficiency queries."""

    def __init__(self, task_storage: TaskStorage, project_storage: ProjectStorage) -> None:
        self.task_storage = task_storage
        self.project_storage = project_storage
        self.searcher = HybridSearch(task_storage)
        self.header_generator = HeaderGenerator(200)

    def get_task_context(self, task_id: str) -> TaskContext:
        """Return the task with its project, dependencies, children and related tasks."""
        task = self.task_storage.get_task(task_id)
        project = self.project_storage.get_project(task.project_id)

        if self.header_generator.is_stale(task, HEADER_MAX_AGE):
            self.header_generator.update_task_header(task, project)
            with suppress(CompassError):
                self.task_storage.update_task(
                    task_id,
                    {
                        "contextualHeader": task.context.contextual_header,
                        "lastVerified": task.context.last_verified,
                    },
                )

        return TaskContext(
            task=task,
            project=project,
            dependencies=self._existing_tasks(task.context.dependencies),
            children=self._existing_tasks(task.card.children),
            related=self._related_tasks(task, project),
        )

    def search(self, query: str, options: SearchOptions | None = None) -> list[SearchResult]:
        return self.searcher.search(query, options)

    def get_next_task(self, criteria: NextTaskCriteria) -> Task:
        """Pick the best planned or blocked task of the project."""
        tasks = self.task_storage.list_tasks(TaskFilter(project_id=criteria.project_id))
        excluded = set(criteria.exclude or ())
        candidates = [
            task
            for task in tasks
            if task.id not in excluded
            and task.card.status in (TaskStatus.PLANNED, TaskStatus.BLOCKED)
        ]
        if not candidates:
            raise CompassError("no suitable next task found")
        scored = self.score_task_candidates(candidates)
        return max(scored, key=lambda item: item.score).task

    def check_sufficiency(self, task_id: str) -> SufficiencyReport:
        """Report what context the task lacks and what has gone stale."""
        task = self.task_storage.get_task(task_id)
        missing: list[str] = []
        stale: list[str] = []

        if not task.card.description:
            missing.append("description")
        if not task.criteria.acceptance:
            missing.append("acceptance criteria")
        if not task.context.files and task.card.status != TaskStatus.PLANNED:
            missing.append("affected files")

        if self.header_generator.is_stale(task, HEADER_MAX_AGE):
            stale.append("contextual header")

        for dep_id in task.context.dependencies:
            try:
                self.task_storage.get_task(dep_id)
            except CompassError:
                stale.append(f"dependency: {dep_id}")

        return SufficiencyReport(
            task_id=task_id,
            sufficient=not missing and not stale,
            missing=missing,
            stale=stale,
        )

    def score_task_candidates(self, tasks: Iterable[Task]) -> list[ScoredTask]:
        """Score tasks by readiness: status, dependencies, confidence, criteria and age."""
        now = datetime.now(timezone.utc)
        scored = []
        for task in tasks:
            score = 0.0
            if task.card.status == TaskStatus.PLANNED:
                score += 10.0
            elif task.card.status == TaskStatus.BLOCKED:
                score += 2.0

            dep_count = len(task.context.dependencies)
            score += 5.0 if dep_count == 0 else 5.0 / (dep_count + 1)

            score += _CONFIDENCE_SCORES.get(Confidence(task.context.confidence), 0.0)

            if task.criteria.acceptance:
                score += 2.0

            if now - _as_aware(task.card.created_at) < RECENT_TASK_AGE:
                score += 1.0

            scored.append(ScoredTask(task=task, score=score))
        return scored

    def _existing_tasks(self, task_ids: Iterable[str]) -> list[Task]:
        found = []
        for task_id in task_ids:
            try:
                found.append(self.task_storage.get_task(task_id))
            except CompassError:
                continue
        return found

    def _related_tasks(self, task: Task, project: Project | None) -> list[Task]:
        others = self.task_storage.list_tasks(TaskFilter(project_id=task.project_id))
        related = [
            other
            for other in others
            if other.id != task.id
            and (has_shared_files(task, other) or has_similar_content(task, other))
        ]
        return related[:MAX_RELATED]