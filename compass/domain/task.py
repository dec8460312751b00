"""Tasks: the card, its context and its acceptance criteria."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

_ZERO_TIME_TEXT = "0001-01-01T00:00:00Z"
_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
_TIME_RE = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<frac>\d+))?"
    r"(?P<tz>Z|[+-]\d{2}:\d{2})?$"
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _format_time(value: datetime | None) -> str:
    """Render a timestamp in RFC 3339 form; ``None`` becomes the zero time."""
    if value is None:
        return _ZERO_TIME_TEXT
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.isoformat()
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


def _parse_time(text: Any) -> datetime:
    """Parse an RFC 3339 timestamp, keeping at most microsecond precision."""
    if not text:
        return _ZERO_TIME
    if not isinstance(text, str):
        raise ValueError(f"invalid timestamp: {text!r}")
    match = _TIME_RE.match(text.strip())
    if match is None:
        raise ValueError(f"invalid timestamp: {text!r}")
    fraction = (match["frac"] or "")[:6].ljust(6, "0")
    zone = match["tz"] or "Z"
    if zone == "Z":
        zone = "+00:00"
    return datetime.fromisoformat(f"{match['base']}.{fraction}{zone}")


def _parse_optional_time(text: Any) -> datetime | None:
    parsed = _parse_time(text)
    return None if parsed == _ZERO_TIME else parsed


class TaskStatus(str, Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    BLOCKED = "blocked"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class Card:
    title: str = ""
    description: str = ""
    status: TaskStatus = TaskStatus.PLANNED
    parent: str | None = None
    children: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)


@dataclass
class Context:
    files: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    assumptions: list[str] = field(default_factory=list)
    blockers: list[str] = field(default_factory=list)
    decisions: list[str] = field(default_factory=list)
    contextual_header: str = ""
    last_verified: datetime | None = None
    confidence: Confidence = Confidence.MEDIUM


@dataclass
class Criteria:
    acceptance: list[str] = field(default_factory=list)
    verification: list[str] = field(default_factory=list)
    test_scenarios: list[str] = field(default_factory=list)


@dataclass
class Task:
    id: str
    project_id: str
    card: Card = field(default_factory=Card)
    context: Context = field(default_factory=Context)
    criteria: Criteria = field(default_factory=Criteria)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form used on the wire and on disk."""
        card: dict[str, Any] = {
            "title": self.card.title,
            "description": self.card.description,
            "status": TaskStatus(self.card.status).value,
        }
        if self.card.parent is not None:
            card["parent"] = self.card.parent
        if self.card.children:
            card["children"] = list(self.card.children)
        card["createdAt"] = _format_time(self.card.created_at)
        card["updatedAt"] = _format_time(self.card.updated_at)

        context: dict[str, Any] = {
            "files": list(self.context.files),
            "dependencies": list(self.context.dependencies),
            "assumptions": list(self.context.assumptions),
            "blockers": list(self.context.blockers),
            "decisions": list(self.context.decisions),
        }
        if self.context.contextual_header:
            context["contextualHeader"] = self.context.contextual_header
        context["lastVerified"] = _format_time(self.context.last_verified)
        context["confidence"] = Confidence(self.context.confidence).value

        criteria: dict[str, Any] = {
            "acceptance": list(self.criteria.acceptance),
            "verification": list(self.criteria.verification),
        }
        if self.criteria.test_scenarios:
            criteria["testScenarios"] = list(self.criteria.test_scenarios)

        return {
            "id": self.id,
            "projectId": self.project_id,
            "card": card,
            "context": context,
            "criteria": criteria,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        """Build a task from the form produced by :meth:`to_dict`."""
        card = data.get("card") or {}
        context = data.get("context") or {}
        criteria = data.get("criteria") or {}
        return cls(
            id=data.get("id", ""),
            project_id=data.get("projectId", ""),
            card=Card(
                title=card.get("title", ""),
                description=card.get("description", ""),
                status=TaskStatus(card.get("status") or TaskStatus.PLANNED),
                parent=card.get("parent"),
                children=list(card.get("children") or []),
                created_at=_parse_time(card.get("createdAt")),
                updated_at=_parse_time(card.get("updatedAt")),
            ),
            context=Context(
                files=list(context.get("files") or []),
                dependencies=list(context.get("dependencies") or []),
                assumptions=list(context.get("assumptions") or []),
                blockers=list(context.get("blockers") or []),
                decisions=list(context.get("decisions") or []),
                contextual_header=context.get("contextualHeader", ""),
                last_verified=_parse_optional_time(context.get("lastVerified")),
                confidence=Confidence(context.get("confidence") or Confidence.MEDIUM),
            ),
            criteria=Criteria(
                acceptance=list(criteria.get("acceptance") or []),
                verification=list(criteria.get("verification") or []),
                test_scenarios=list(criteria.get("testScenarios") or []),
            ),
        )


@dataclass
class TaskFilter:
    project_id: str | None = None
    status: TaskStatus | None = None
    parent: str | None = None

    def matches(self, task: Task) -> bool:
        """Tell whether a task passes every criterion that is set."""
        if self.project_id is not None and task.project_id != self.project_id:
            return False
        if self.status is not None and task.card.status != self.status:
            return False
        if self.parent is not None and task.card.parent != self.parent:
            return False
        return True


def new_task(project_id: str, title: str, description: str) -> Task:
    """Create a planned task with a fresh ID and medium confidence."""
    now = _now()
    return Task(
        id=str(uuid.uuid4()),
        project_id=project_id,
        card=Card(
            title=title,
            description=description,
            status=TaskStatus.PLANNED,
            created_at=now,
            updated_at=now,
        ),
        context=Context(last_verified=now, confidence=Confidence.MEDIUM),
        criteria=Criteria(),
    )