"""Dispatches MCP commands by name to the task, project and planning services."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Mapping

from compass.domain.context import NextTaskCriteria, SearchOptions
from compass.domain.project import new_project
from compass.domain.task import TaskFilter, TaskStatus, _format_time, new_task
from compass.errors import CompassError
from compass.mcp.params import (
    AddDiscoveryParams,
    CreateProjectParams,
    CreateTaskParams,
    IdParams,
    ListTasksParams,
    NextTaskParams,
    ProjectScopeParams,
    RecordDecisionParams,
    SearchContextParams,
    SetCurrentProjectParams,
    StartPlanningParams,
    TaskIdParams,
    UpdateTaskParams,
    parse_params,
)
from compass.service.context_retriever import ContextRetriever
from compass.service.planning_service import PlanningService
from compass.service.project_service import ProjectService
from compass.service.project_summary import ProjectSummaryService
from compass.service.task_service import TaskService

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 10
_SUCCESS = {"status": "success"}


class UnknownMethodError(CompassError):
    """No command is registered under the requested method name."""

    def __init__(self, method: str) -> None:
        super().__init__(f"unknown method: {method}")
        self.method = method


def _nanoseconds(duration: timedelta) -> int:
    seconds = duration.days * 86400 + duration.seconds
    return seconds * 1_000_000_000 + duration.microseconds * 1000


def to_jsonable(value: Any) -> Any:
    """Turn a command result into plain JSON-compatible Python values."""
    if isinstance(value, Enum):
        return value.value
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, datetime):
        return _format_time(value)
    if isinstance(value, timedelta):
        return _nanoseconds(value)
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_jsonable(to_dict())
    if isinstance(value, Mapping):
        return {
            (key.value if isinstance(key, Enum) else str(key)): to_jsonable(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(item) for item in value]
    raise TypeError(f"cannot represent {type(value).__name__} as JSON")


class MCPServer:
    """Routes ``compass.*`` commands to the services."""

    def __init__(
        self,
        task_service: TaskService,
        project_service: ProjectService,
        context_retriever: ContextRetriever,
        planning_service: PlanningService,
        summary_service: ProjectSummaryService,
    ) -> None:
        self.task_service = task_service
        self.project_service = project_service
        self.context_retriever = context_retriever
        self.planning_service = planning_service
        self.summary_service = summary_service
        self._handlers: dict[str, Callable[[Any], Any]] = {
            "compass.project.create": self._project_create,
            "compass.project.list": self._project_list,
            "compass.project.current": self._project_current,
            "compass.project.set_current": self._project_set_current,
            "compass.task.create": self._task_create,
            "compass.task.update": self._task_update,
            "compass.task.list": self._task_list,
            "compass.task.get": self._task_get,
            "compass.task.delete": self._task_delete,
            "compass.context.get": self._context_get,
            "compass.context.search": self._context_search,
            "compass.context.check": self._context_check,
            "compass.next": self._next_task,
            "compass.blockers": self._blockers,
            "compass.planning.start": self._planning_start,
            "compass.planning.list": self._planning_list,
            "compass.planning.get": self._planning_get,
            "compass.planning.complete": self._planning_complete,
            "compass.planning.abort": self._planning_abort,
            "compass.discovery.add": self._discovery_add,
            "compass.discovery.list": self._discovery_list,
            "compass.decision.record": self._decision_record,
            "compass.decision.list": self._decision_list,
            "compass.project.summary": self._project_summary,
        }

    @property
    def methods(self) -> list[str]:
        """Names of every supported command."""
        return list(self._handlers)

    def handle_command(self, method: str, params: Any = None) -> Any:
        """Run ``method`` with ``params`` (JSON text, bytes, a mapping or None)."""
        logger.info("Handling MCP command: %s", method)
        handler = self._handlers.get(method)
        if handler is None:
            raise UnknownMethodError(method)
        return handler(params)

    def _resolve_project(self, project_id: str) -> str:
        if project_id:
            return project_id
        try:
            return self.project_service.get_current().id
        except CompassError as exc:
            raise CompassError("no current project set and no projectId provided") from exc

    # Projects

    def _project_create(self, raw: Any) -> Any:
        p = parse_params(CreateProjectParams, raw)
        project = new_project(p.name, p.description, p.goal)
        self.project_service.create(project)
        return project

    def _project_list(self, raw: Any) -> Any:
        return self.project_service.list()

    def _project_current(self, raw: Any) -> Any:
        return self.project_service.get_current()

    def _project_set_current(self, raw: Any) -> Any:
        p = parse_params(SetCurrentProjectParams, raw)
        self.project_service.set_current(p.id)
        return dict(_SUCCESS)

    # Tasks

    def _task_create(self, raw: Any) -> Any:
        p = parse_params(CreateTaskParams, raw)
        task = new_task(p.project_id, p.title, p.description)
        if p.files:
            task.context.files = list(p.files)
        if p.dependencies:
            task.context.dependencies = list(p.dependencies)
        if p.acceptance:
            task.criteria.acceptance = list(p.acceptance)
        self.task_service.create(task)
        return task

    def _task_update(self, raw: Any) -> Any:
        p = parse_params(UpdateTaskParams, raw)
        return self.task_service.update(p.id, p.updates)

    def _task_list(self, raw: Any) -> Any:
        p = parse_params(ListTasksParams, raw)
        return self.task_service.list(
            TaskFilter(project_id=p.project_id, status=p.status, parent=p.parent)
        )

    def _task_get(self, raw: Any) -> Any:
        p = parse_params(IdParams, raw)
        return self.task_service.get(p.id)

    def _task_delete(self, raw: Any) -> Any:
        p = parse_params(IdParams, raw)
        self.task_service.delete(p.id)
        return dict(_SUCCESS)

    # Context

    def _context_get(self, raw: Any) -> Any:
        p = parse_params(TaskIdParams, raw)
        return self.context_retriever.get_task_context(p.task_id)

    def _context_search(self, raw: Any) -> Any:
        p = parse_params(SearchContextParams, raw)
        limit = p.limit if p.limit != 0 else DEFAULT_SEARCH_LIMIT
        options = SearchOptions(project_id=p.project_id, limit=limit, offset=p.offset)
        return self.context_retriever.search(p.query, options)

    def _context_check(self, raw: Any) -> Any:
        p = parse_params(TaskIdParams, raw)
        return self.context_retriever.check_sufficiency(p.task_id)

    # Intelligent queries

    def _next_task(self, raw: Any) -> Any:
        p = parse_params(NextTaskParams, raw)
        criteria = NextTaskCriteria(
            project_id=self._resolve_project(p.project_id), exclude=list(p.exclude)
        )
        return self.context_retriever.get_next_task(criteria)

    def _blockers(self, raw: Any) -> Any:
        p = parse_params(ProjectScopeParams, raw)
        project_id = self._resolve_project(p.project_id)
        return self.task_service.list(
            TaskFilter(project_id=project_id, status=TaskStatus.BLOCKED)
        )

    # Planning

    def _planning_start(self, raw: Any) -> Any:
        p = parse_params(StartPlanningParams, raw)
        project_id = self._resolve_project(p.project_id)
        return self.planning_service.start_planning_session(project_id, p.name)

    def _planning_list(self, raw: Any) -> Any:
        p = parse_params(ProjectScopeParams, raw)
        return self.planning_service.list_planning_sessions(self._resolve_project(p.project_id))

    def _planning_get(self, raw: Any) -> Any:
        p = parse_params(IdParams, raw)
        return self.planning_service.get_planning_session(p.id)

    def _planning_complete(self, raw: Any) -> Any:
        p = parse_params(IdParams, raw)
        return self.planning_service.complete_planning_session(p.id)

    def _planning_abort(self, raw: Any) -> Any:
        p = parse_params(IdParams, raw)
        return self.planning_service.abort_planning_session(p.id)

    def _discovery_add(self, raw: Any) -> Any:
        p = parse_params(AddDiscoveryParams, raw)
        project_id = self._resolve_project(p.project_id)
        return self.planning_service.record_discovery(
            project_id, p.insight, p.impact, p.source, p.affected_task_ids
        )

    def _discovery_list(self, raw: Any) -> Any:
        p = parse_params(ProjectScopeParams, raw)
        return self.planning_service.list_discoveries(self._resolve_project(p.project_id))

    def _decision_record(self, raw: Any) -> Any:
        p = parse_params(RecordDecisionParams, raw)
        project_id = self._resolve_project(p.project_id)
        return self.planning_service.record_decision(
            project_id,
            p.question,
            p.choice,
            p.rationale,
            p.alternatives,
            p.reversible,
            p.affected_task_ids,
        )

    def _decision_list(self, raw: Any) -> Any:
        p = parse_params(ProjectScopeParams, raw)
        return self.planning_service.list_decisions(self._resolve_project(p.project_id))

    # Summary

    def _project_summary(self, raw: Any) -> Any:
        p = parse_params(ProjectScopeParams, raw)
        return self.summary_service.generate_project_summary(self._resolve_project(p.project_id))