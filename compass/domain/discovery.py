"""Planning sessions, discoveries and decisions recorded for a project."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable

from compass.domain.task import _format_time, _now, _parse_time


class Impact(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DiscoverySource(str, Enum):
    IMPLEMENTATION = "implementation"
    TESTING = "testing"
    RESEARCH = "research"
    PLANNING = "planning"


class PlanningSessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class PlanningSession:
    id: str
    project_id: str
    name: str
    status: PlanningSessionStatus = PlanningSessionStatus.ACTIVE
    created_at: datetime = field(default_factory=_now)
    tasks: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "name": self.name,
            "status": PlanningSessionStatus(self.status).value,
            "createdAt": _format_time(self.created_at),
            "tasks": list(self.tasks),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlanningSession:
        return cls(
            id=data.get("id", ""),
            project_id=data.get("projectId", ""),
            name=data.get("name", ""),
            status=PlanningSessionStatus(data.get("status") or PlanningSessionStatus.ACTIVE),
            created_at=_parse_time(data.get("createdAt")),
            tasks=list(data.get("tasks") or []),
        )


@dataclass
class Discovery:
    id: str
    project_id: str
    insight: str
    impact: Impact
    source: DiscoverySource
    timestamp: datetime = field(default_factory=_now)
    affected_tasks: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "timestamp": _format_time(self.timestamp),
            "insight": self.insight,
            "impact": Impact(self.impact).value,
            "affectedTasks": list(self.affected_tasks),
            "source": DiscoverySource(self.source).value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Discovery:
        return cls(
            id=data.get("id", ""),
            project_id=data.get("projectId", ""),
            insight=data.get("insight", ""),
            impact=Impact(data.get("impact")),
            source=DiscoverySource(data.get("source")),
            timestamp=_parse_time(data.get("timestamp")),
            affected_tasks=list(data.get("affectedTasks") or []),
        )


@dataclass
class Decision:
    id: str
    project_id: str
    question: str
    choice: str
    rationale: str
    alternatives: list[str] = field(default_factory=list)
    reversible: bool = False
    timestamp: datetime = field(default_factory=_now)
    affected_tasks: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "timestamp": _format_time(self.timestamp),
            "question": self.question,
            "choice": self.choice,
            "alternatives": list(self.alternatives),
            "rationale": self.rationale,
            "reversible": self.reversible,
            "affectedTasks": list(self.affected_tasks),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Decision:
        return cls(
            id=data.get("id", ""),
            project_id=data.get("projectId", ""),
            question=data.get("question", ""),
            choice=data.get("choice", ""),
            rationale=data.get("rationale", ""),
            alternatives=list(data.get("alternatives") or []),
            reversible=bool(data.get("reversible", False)),
            timestamp=_parse_time(data.get("timestamp")),
            affected_tasks=list(data.get("affectedTasks") or []),
        )


def new_planning_session(project_id: str, name: str) -> PlanningSession:
    """Open an active planning session with no tasks yet."""
    return PlanningSession(
        id=str(uuid.uuid4()),
        project_id=project_id,
        name=name,
        status=PlanningSessionStatus.ACTIVE,
        created_at=_now(),
    )


def new_discovery(
    project_id: str, insight: str, impact: Impact, source: DiscoverySource
) -> Discovery:
    """Record an insight stamped with the current time."""
    return Discovery(
        id=str(uuid.uuid4()),
        project_id=project_id,
        insight=insight,
        impact=Impact(impact),
        source=DiscoverySource(source),
        timestamp=_now(),
    )


def new_decision(
    project_id: str,
    question: str,
    choice: str,
    rationale: str,
    alternatives: Iterable[str] | None,
    reversible: bool,
) -> Decision:
    """Record a decision stamped with the current time."""
    return Decision(
        id=str(uuid.uuid4()),
        project_id=project_id,
        question=question,
        choice=choice,
        rationale=rationale,
        alternatives=list(alternatives or []),
        reversible=reversible,
        timestamp=_now(),
    )