"""Project-wide summaries: task statistics, insights and recommendations."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Sequence

from compass.domain.discovery import Decision, Discovery, Impact, PlanningSession
from compass.domain.project import Project
from compass.domain.task import Confidence, Task, TaskFilter, TaskStatus, _format_time, _now
from compass.errors import CompassError
from compass.service.planning_service import PlanningService
from compass.service.project_service import ProjectService
from compass.service.task_service import TaskService

RECENT_TASK_COUNT = 5
WEEK = timedelta(days=7)

ON_TRACK_RECOMMENDATION = (
    "Project is on track - consider starting a new planning session for next iteration"
)


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _counts(counter: Counter, enum_type: type) -> dict[str, int]:
    return {
        key: count
        for key, count in sorted((enum_type(k).value, v) for k, v in counter.items())
    }


@dataclass
class TaskSummary:
    total: int = 0
    by_status: Counter = field(default_factory=Counter)
    by_confidence: Counter = field(default_factory=Counter)
    recent: list[Task] = field(default_factory=list)
    blocked: list[Task] = field(default_factory=list)
    completed: list[Task] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "byStatus": _counts(self.by_status, TaskStatus),
            "byConfidence": _counts(self.by_confidence, Confidence),
            "recent": [task.to_dict() for task in self.recent],
            "blocked": [task.to_dict() for task in self.blocked],
            "completed": [task.to_dict() for task in self.completed],
        }


@dataclass
class ProjectInsights:
    velocity_trend: str = ""
    blocker_count: int = 0
    high_impact_discoveries: int = 0
    recent_decisions: int = 0
    context_health: str = ""
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "velocityTrend": self.velocity_trend,
            "blockerCount": self.blocker_count,
            "highImpactDiscoveries": self.high_impact_discoveries,
            "recentDecisions": self.recent_decisions,
            "contextHealth": self.context_health,
            "recommendations": list(self.recommendations),
        }


@dataclass
class ProjectSummary:
    project: Project
    task_summary: TaskSummary
    discoveries: list[Discovery] = field(default_factory=list)
    decisions: list[Decision] = field(default_factory=list)
    planning_sessions: list[PlanningSession] = field(default_factory=list)
    insights: ProjectInsights = field(default_factory=ProjectInsights)
    generated_at: datetime = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "project": self.project.to_dict(),
            "taskSummary": self.task_summary.to_dict(),
            "discoveries": [item.to_dict() for item in self.discoveries],
            "decisions": [item.to_dict() for item in self.decisions],
            "planningSessions": [item.to_dict() for item in self.planning_sessions],
            "insights": self.insights.to_dict(),
            "generatedAt": _format_time(self.generated_at),
        }


def generate_task_summary(tasks: Sequence[Task]) -> TaskSummary:
    """Count tasks by status and confidence and pick out notable ones."""
    newest_first = sorted(tasks, key=lambda t: _as_aware(t.card.created_at), reverse=True)
    return TaskSummary(
        total=len(tasks),
        by_status=Counter(TaskStatus(task.card.status) for task in tasks),
        by_confidence=Counter(Confidence(task.context.confidence) for task in tasks),
        recent=newest_first[:RECENT_TASK_COUNT],
        blocked=[task for task in tasks if task.card.status == TaskStatus.BLOCKED],
        completed=[task for task in tasks if task.card.status == TaskStatus.COMPLETED],
    )


def analyze_velocity_trend(tasks: Sequence[Task]) -> str:
    """Compare tasks completed this week with those completed the week before."""
    if not tasks:
        return "no_data"
    now = datetime.now(timezone.utc)
    week_ago = now - WEEK
    two_weeks_ago = now - 2 * WEEK

    recent = previous = 0
    for task in tasks:
        if task.card.status != TaskStatus.COMPLETED:
            continue
        updated = _as_aware(task.card.updated_at)
        if updated > week_ago:
            recent += 1
        elif updated > two_weeks_ago:
            previous += 1

    if recent > previous:
        return "improving"
    if recent < previous:
        return "declining"
    return "stable"


def analyze_context_health(tasks: Sequence[Task]) -> str:
    """Grade how well the tasks' context is maintained."""
    if not tasks:
        return "good"
    now = datetime.now(timezone.utc)
    total = len(tasks)
    low_confidence = sum(task.context.confidence == Confidence.LOW for task in tasks)
    without_acceptance = sum(not task.criteria.acceptance for task in tasks)
    stale = sum(
        task.context.last_verified is None
        or now - _as_aware(task.context.last_verified) > WEEK
        for task in tasks
    )

    score = 100
    for count in (low_confidence, without_acceptance, stale):
        score -= (count * 100) // total // 3

    if score >= 80:
        return "excellent"
    if score >= 60:
        return "good"
    if score >= 40:
        return "fair"
    return "poor"


def generate_recommendations(
    tasks: Sequence[Task],
    discoveries: Sequence[Discovery],
    decisions: Sequence[Decision],
    insights: ProjectInsights,
) -> list[str]:
    """Suggest next steps from the insights gathered so far."""
    recommendations: list[str] = []

    if insights.blocker_count > 0:
        recommendations.append(
            f"Address {insights.blocker_count} blocked tasks to improve velocity"
        )

    if insights.context_health == "poor":
        recommendations.append(
            "Review and update task context - many tasks have poor context health"
        )
    elif insights.context_health == "fair":
        recommendations.append(
            "Consider updating acceptance criteria and task confidence levels"
        )

    if insights.velocity_trend == "declining":
        recommendations.append(
            "Velocity is declining - consider breaking down large tasks or addressing blockers"
        )

    if insights.high_impact_discoveries > 0:
        recommendations.append(
            "Review high-impact discoveries and update related tasks accordingly"
        )

    uncertain = sum(
        task.context.confidence == Confidence.LOW and task.card.status == TaskStatus.PLANNED
        for task in tasks
    )
    if uncertain > 0:
        recommendations.append(
            f"Plan session recommended - {uncertain} tasks have low confidence"
        )

    if not recommendations:
        recommendations.append(ON_TRACK_RECOMMENDATION)
    return recommendations


def generate_insights(
    tasks: Sequence[Task],
    discoveries: Sequence[Discovery],
    decisions: Sequence[Decision],
    sessions: Sequence[PlanningSession],
) -> ProjectInsights:
    """Derive velocity, blocker, discovery and context-health insights."""
    week_ago = datetime.now(timezone.utc) - WEEK
    insights = ProjectInsights(
        velocity_trend=analyze_velocity_trend(tasks),
        blocker_count=sum(task.card.status == TaskStatus.BLOCKED for task in tasks),
        high_impact_discoveries=sum(d.impact == Impact.HIGH for d in discoveries),
    )
    # Recent discoveries count towards recent decisions as well.
    insights.recent_decisions = sum(
        _as_aware(item.timestamp) > week_ago for item in (*discoveries, *decisions)
    )
    insights.context_health = analyze_context_health(tasks)
    insights.recommendations = generate_recommendations(tasks, discoveries, decisions, insights)
    return insights


def _or_empty(load: Any, project_id: str) -> list:
    try:
        return list(load(project_id))
    except CompassError:
        return []


class ProjectSummaryService:
    """Builds a summary of a project's tasks, records and health."""

    def __init__(
        self,
        task_service: TaskService,
        project_service: ProjectService,
        planning_service: PlanningService,
    ) -> None:
        self.task_service = task_service
        self.project_service = project_service
        self.planning_service = planning_service

    def generate_project_summary(self, project_id: str) -> ProjectSummary:
        project = self.project_service.get(project_id)
        tasks = self.task_service.list(TaskFilter(project_id=project_id))
        discoveries = _or_empty(self.planning_service.list_discoveries, project_id)
        decisions = _or_empty(self.planning_service.list_decisions, project_id)
        sessions = _or_empty(self.planning_service.list_planning_sessions, project_id)

        return ProjectSummary(
            project=project,
            task_summary=generate_task_summary(tasks),
            discoveries=discoveries,
            decisions=decisions,
            planning_sessions=sessions,
            insights=generate_insights(tasks, discoveries, decisions, sessions),
            generated_at=datetime.now(timezone.utc),
        )

    @staticmethod
    def _collect(items: Iterable[Any]) -> list[Any]:
        return list(items)