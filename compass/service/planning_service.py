"""Planning sessions, discoveries and decisions, and their effect on tasks."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Mapping, Protocol

from compass.domain.discovery import (
    Decision,
    DiscoverySource,
    Discovery,
    Impact,
    PlanningSession,
    PlanningSessionStatus,
    new_decision,
    new_discovery,
    new_planning_session,
)
from compass.domain.project import Project
from compass.domain.task import Task
from compass.errors import CompassError, NotFoundError
from compass.service.header_generator import HeaderGenerator
from compass.service.project_service import ProjectService
from compass.service.task_service import TaskService


class PlanningStorage(Protocol):
    def create_planning_session(self, session: PlanningSession) -> None: ...
    def get_planning_session(self, session_id: str) -> PlanningSession: ...
    def list_planning_sessions(self, project_id: str) -> list[PlanningSession]: ...
    def update_planning_session(
        self, session_id: str, updates: Mapping[str, Any]
    ) -> PlanningSession: ...
    def create_discovery(self, discovery: Discovery) -> None: ...
    def list_discoveries(self, project_id: str) -> list[Discovery]: ...
    def create_decision(self, decision: Decision) -> None: ...
    def list_decisions(self, project_id: str) -> list[Decision]: ...


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _nanoseconds(duration: timedelta) -> int:
    seconds = duration.days * 86400 + duration.seconds
    return seconds * 1_000_000_000 + duration.microseconds * 1000


@dataclass
class SessionSummary:
    session: PlanningSession
    tasks: list[Task] = field(default_factory=list)
    discoveries: list[Discovery] = field(default_factory=list)
    decisions: list[Decision] = field(default_factory=list)
    duration: timedelta = timedelta(0)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form; the duration is given in nanoseconds."""
        return {
            "session": self.session.to_dict(),
            "tasks": [task.to_dict() for task in self.tasks],
            "discoveries": [item.to_dict() for item in self.discoveries],
            "decisions": [item.to_dict() for item in self.decisions],
            "duration": _nanoseconds(self.duration),
        }


class PlanningService:
    """Runs planning sessions and records discoveries and decisions."""

    def __init__(
        self,
        storage: PlanningStorage,
        task_service: TaskService,
        project_service: ProjectService,
    ) -> None:
        self.storage = storage
        self.task_service = task_service
        self.project_service = project_service
        self.header_generator = HeaderGenerator(200)

    def start_planning_session(self, project_id: str, name: str) -> PlanningSession:
        try:
            self.project_service.get(project_id)
        except CompassError as exc:
            raise NotFoundError(f"project not found: {exc}") from exc
        session = new_planning_session(project_id, name)
        self.storage.create_planning_session(session)
        return session

    def get_planning_session(self, session_id: str) -> PlanningSession:
        return self.storage.get_planning_session(session_id)

    def list_planning_sessions(self, project_id: str) -> list[PlanningSession]:
        return self.storage.list_planning_sessions(project_id)

    def complete_planning_session(self, session_id: str) -> PlanningSession:
        return self.storage.update_planning_session(
            session_id, {"status": PlanningSessionStatus.COMPLETED}
        )

    def abort_planning_session(self, session_id: str) -> PlanningSession:
        return self.storage.update_planning_session(
            session_id, {"status": PlanningSessionStatus.ABORTED}
        )

    def add_task_to_session(self, session_id: str, task_id: str) -> None:
        """Append a task to an active session."""
        session = self.storage.get_planning_session(session_id)
        status = PlanningSessionStatus(session.status)
        if status is not PlanningSessionStatus.ACTIVE:
            raise CompassError(f"cannot add tasks to {status.value} planning session")
        self.storage.update_planning_session(
            session_id, {"tasks": [*session.tasks, task_id]}
        )

    def record_discovery(
        self,
        project_id: str,
        insight: str,
        impact: Impact,
        source: DiscoverySource,
        affected_task_ids: Iterable[str] | None,
    ) -> Discovery:
        discovery = new_discovery(project_id, insight, impact, source)
        discovery.affected_tasks = list(affected_task_ids or [])
        self.storage.create_discovery(discovery)
        self._attach_to_tasks(discovery.id, discovery.affected_tasks)
        return discovery

    def record_decision(
        self,
        project_id: str,
        question: str,
        choice: str,
        rationale: str,
        alternatives: Iterable[str] | None,
        reversible: bool,
        affected_task_ids: Iterable[str] | None,
    ) -> Decision:
        decision = new_decision(project_id, question, choice, rationale, alternatives, reversible)
        decision.affected_tasks = list(affected_task_ids or [])
        self.storage.create_decision(decision)
        self._attach_to_tasks(decision.id, decision.affected_tasks)
        return decision

    def list_discoveries(self, project_id: str) -> list[Discovery]:
        return self.storage.list_discoveries(project_id)

    def list_decisions(self, project_id: str) -> list[Decision]:
        return self.storage.list_decisions(project_id)

    def generate_session_summary(self, session_id: str) -> SessionSummary:
        """Collect the session's tasks and the records made since it started."""
        session = self.storage.get_planning_session(session_id)
        started = _as_aware(session.created_at)

        tasks = []
        for task_id in session.tasks:
            try:
                tasks.append(self.task_service.get(task_id))
            except CompassError:
                continue

        try:
            discoveries = self.storage.list_discoveries(session.project_id)
        except CompassError:
            discoveries = []
        try:
            decisions = self.storage.list_decisions(session.project_id)
        except CompassError:
            decisions = []

        return SessionSummary(
            session=session,
            tasks=tasks,
            discoveries=[d for d in discoveries if _as_aware(d.timestamp) > started],
            decisions=[d for d in decisions if _as_aware(d.timestamp) > started],
            duration=datetime.now(timezone.utc) - started,
        )

    def _attach_to_tasks(self, record_id: str, task_ids: Iterable[str]) -> None:
        """Reference a record from each task and refresh its header; unknown IDs are skipped."""
        for task_id in task_ids:
            try:
                task = self.task_service.get(task_id)
            except CompassError:
                continue
            task.context.decisions.append(record_id)
            project: Project | None
            try:
                project = self.project_service.get(task.project_id)
            except CompassError:
                project = None
            self.header_generator.update_task_header(task, project)
            try:
                self.task_service.update(
                    task_id,
                    {
                        "decisions": task.context.decisions,
                        "contextualHeader": task.context.contextual_header,
                        "lastVerified": task.context.last_verified,
                    },
                )
            except CompassError:
                continue