"""Builds short contextual headers summarising a task."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from compass.domain.project import Project
from compass.domain.task import Confidence, Task, TaskStatus

DEFAULT_MAX_TOKENS = 200


def truncate(text: str, max_length: int) -> str:
    """Shorten ``text`` to about ``max_length``, preferring a word boundary."""
    if len(text) <= max_length:
        return text
    truncated = text[:max_length]
    last_space = truncated.rfind(" ")
    if last_space > max_length // 2:
        return truncated[:last_space] + "..."
    return truncated[: max_length - 3] + "..."


def _join_limited(items: list[str]) -> str:
    return ", ".join(items[:3])


class HeaderGenerator:
    """Generates contextual headers capped at ``max_tokens`` characters."""

    def __init__(self, max_tokens: int = DEFAULT_MAX_TOKENS) -> None:
        self.max_tokens = max_tokens if max_tokens > 0 else DEFAULT_MAX_TOKENS

    def generate(self, task: Task, project: Project | None) -> str:
        parts: list[str] = []
        card, context = task.card, task.context

        if project is not None and project.goal:
            parts.append(f"Part of {project.goal}.")

        if card.description:
            parts.append(f"Purpose: {truncate(card.description, 50)}")
        elif card.title:
            parts.append(f"Task: {card.title}.")

        status = TaskStatus(card.status)
        if status is not TaskStatus.PLANNED:
            parts.append(f"Status: {status.value}.")

        deps = context.dependencies
        if deps:
            if len(deps) <= 3:
                parts.append(f"Depends on: {', '.join(deps)}.")
            else:
                parts.append(f"Depends on: {_join_limited(deps)} and {len(deps) - 3} others.")

        if context.blockers:
            parts.append(f"Blocked by: {truncate('. '.join(context.blockers), 60)}")

        files = context.files
        if files:
            if len(files) <= 3:
                parts.append(f"Affects files: {', '.join(files)}.")
            else:
                parts.append(f"Affects {len(files)} files including: {_join_limited(files)}.")

        confidence = Confidence(context.confidence)
        if confidence is not Confidence.MEDIUM:
            parts.append(f"Confidence: {confidence.value}.")

        if task.criteria.acceptance:
            parts.append(f"Has {len(task.criteria.acceptance)} acceptance criteria.")

        return truncate(" ".join(parts), self.max_tokens)

    def update_task_header(self, task: Task, project: Project | None) -> None:
        """Regenerate the task's header and mark it verified now."""
        task.context.contextual_header = self.generate(task, project)
        task.context.last_verified = datetime.now(timezone.utc)

    def is_stale(self, task: Task, max_age: timedelta) -> bool:
        """Tell whether the task was last verified longer than ``max_age`` ago."""
        verified = task.context.last_verified
        if verified is None:
            return True
        if verified.tzinfo is None:
            verified = verified.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) - verified > max_age