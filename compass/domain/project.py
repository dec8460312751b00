"""Projects that group tasks under a common goal."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from compass.domain.task import _format_time, _now, _parse_time


@dataclass
class Project:
    id: str
    name: str
    description: str = ""
    goal: str = ""
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form used on the wire and on disk."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "goal": self.goal,
            "createdAt": _format_time(self.created_at),
            "updatedAt": _format_time(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Project:
        """Build a project from the form produced by :meth:`to_dict`."""
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            description=data.get("description", ""),
            goal=data.get("goal", ""),
            created_at=_parse_time(data.get("createdAt")),
            updated_at=_parse_time(data.get("updatedAt")),
        )


def new_project(name: str, description: str, goal: str) -> Project:
    """Create a project with a fresh ID, stamped with the current time."""
    now = _now()
    return Project(
        id=str(uuid.uuid4()),
        name=name,
        description=description,
        goal=goal,
        created_at=now,
        updated_at=now,
    )