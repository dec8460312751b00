from datetime import timedelta

import pytest

from compass.domain.discovery import DiscoverySource, Impact, PlanningSessionStatus
from compass.domain.project import new_project
from compass.domain.task import new_task
from compass.errors import CompassError, NotFoundError
from compass.service.planning_service import PlanningService
from compass.service.project_service import ProjectService
from compass.service.task_service import TaskService
from compass.storage.memory import MemoryStorage


@pytest.fixture
def env():
    storage = MemoryStorage()
    task_service = TaskService(storage)
    project_service = ProjectService(storage)
    planning = PlanningService(storage, task_service, project_service)
    project = new_project("Test Project", "A test project", "Test planning")
    project_service.create(project)
    return storage, task_service, planning, project


def test_start_planning_session(env):
    _, _, planning, project = env
    session = planning.start_planning_session(project.id, "Sprint Planning")
    assert session.name == "Sprint Planning"
    assert session.project_id == project.id
    assert session.status == PlanningStatusActive
    assert session.id
    assert [s.id for s in planning.list_planning_sessions(project.id)] == [session.id]
    assert planning.get_planning_session(session.id).id == session.id


PlanningStatusActive = PlanningSessionStatus.ACTIVE


def test_start_planning_session_unknown_project(env):
    _, _, planning, _ = env
    with pytest.raises(NotFoundError, match="project not found"):
        planning.start_planning_session("missing", "Sprint")


def test_record_discovery(env):
    _, task_service, planning, project = env
    task = new_task(project.id, "Test Task", "A test task")
    task_service.create(task)

    discovery = planning.record_discovery(
        project.id,
        "Users prefer OAuth over custom authentication",
        Impact.HIGH,
        DiscoverySource.RESEARCH,
        [task.id],
    )
    assert discovery.insight == "Users prefer OAuth over custom authentication"
    assert discovery.impact == Impact.HIGH
    assert discovery.source == DiscoverySource.RESEARCH
    assert task.id in discovery.affected_tasks

    discoveries = planning.list_discoveries(project.id)
    assert len(discoveries) == 1
    assert discoveries[0].id == discovery.id

    stored = task_service.get(task.id)
    assert discovery.id in stored.context.decisions
    assert "Test planning" in stored.context.contextual_header


def test_record_discovery_skips_unknown_tasks(env):
    _, _, planning, project = env
    discovery = planning.record_discovery(
        project.id, "insight", Impact.LOW, DiscoverySource.TESTING, ["missing"]
    )
    assert discovery.affected_tasks == ["missing"]
    assert len(planning.list_discoveries(project.id)) == 1


def test_record_decision(env):
    _, task_service, planning, project = env
    task = new_task(project.id, "Test Task", "A test task")
    task_service.create(task)

    decision = planning.record_decision(
        project.id,
        "Which database should we use?",
        "PostgreSQL",
        "Better JSON support and performance",
        ["MySQL", "SQLite"],
        True,
        [task.id],
    )
    assert decision.question == "Which database should we use?"
    assert decision.choice == "PostgreSQL"
    assert decision.rationale == "Better JSON support and performance"
    assert "MySQL" in decision.alternatives
    assert "SQLite" in decision.alternatives
    assert decision.reversible is True
    assert task.id in decision.affected_tasks

    decisions = planning.list_decisions(project.id)
    assert len(decisions) == 1
    assert decisions[0].id == decision.id
    assert decision.id in task_service.get(task.id).context.decisions


def test_complete_and_abort(env):
    _, _, planning, project = env
    first = planning.start_planning_session(project.id, "One")
    second = planning.start_planning_session(project.id, "Two")
    assert planning.complete_planning_session(first.id).status == PlanningSessionStatus.COMPLETED
    assert planning.abort_planning_session(second.id).status == PlanningSessionStatus.ABORTED
    assert planning.get_planning_session(first.id).status == PlanningSessionStatus.COMPLETED
    with pytest.raises(NotFoundError):
        planning.complete_planning_session("missing")


def test_add_task_to_inactive_session_fails(env):
    _, _, planning, project = env
    session = planning.start_planning_session(project.id, "Done")
    planning.complete_planning_session(session.id)
    with pytest.raises(CompassError, match="cannot add tasks to completed planning session"):
        planning.add_task_to_session(session.id, "task-id")


def test_generate_session_summary(env):
    storage, task_service, planning, project = env
    session = planning.start_planning_session(project.id, "Sprint Planning")
    storage.get_planning_session(session.id).created_at -= timedelta(seconds=1)

    task1 = new_task(project.id, "Task 1", "First task")
    task2 = new_task(project.id, "Task 2", "Second task")
    task_service.create(task1)
    task_service.create(task2)

    planning.add_task_to_session(session.id, task1.id)
    planning.add_task_to_session(session.id, task2.id)
    assert planning.get_planning_session(session.id).tasks == [task1.id, task2.id]

    planning.record_discovery(
        project.id, "Important insight", Impact.MEDIUM, DiscoverySource.PLANNING, [task1.id]
    )
    planning.record_decision(
        project.id, "Test question", "Test choice", "Test rationale", ["alt1"], True, [task2.id]
    )

    summary = planning.generate_session_summary(session.id)
    assert summary.session.id == session.id
    assert len(summary.tasks) == 2
    assert len(summary.discoveries) == 1
    assert len(summary.decisions) == 1
    assert summary.duration > timedelta(0)

    data = summary.to_dict()
    assert data["session"]["id"] == session.id
    assert len(data["tasks"]) == 2
    assert data["duration"] >= 1_000_000_000


def test_generate_session_summary_unknown_session(env):
    _, _, planning, _ = env
    with pytest.raises(NotFoundError):
        planning.generate_session_summary("missing")