import json

import pytest

from compass.domain.discovery import (
    DiscoverySource,
    Impact,
    PlanningSessionStatus,
    new_decision,
    new_discovery,
    new_planning_session,
)
from compass.domain.project import new_project
from compass.domain.task import TaskFilter, TaskStatus, new_task
from compass.errors import AlreadyExistsError, CompassError, NotFoundError
from compass.storage.file import FileStorage


@pytest.fixture
def storage(tmp_path):
    return FileStorage(tmp_path)


@pytest.fixture
def project(storage):
    created = new_project("Test Project", "A test project", "Test goal")
    storage.create_project(created)
    return created


def test_initialize_creates_layout(tmp_path):
    FileStorage(tmp_path)
    root = tmp_path / ".compass"
    assert (root / "projects").is_dir()
    assert json.loads((root / "config.json").read_text()) == {}


def test_initialize_keeps_existing_config(tmp_path, storage, project):
    storage.set_current_project(project.id)
    reopened = FileStorage(tmp_path)
    assert reopened.get_current_project().id == project.id


def test_task_operations(storage, project):
    task = new_task(project.id, "Test Task", "A test task")
    storage.create_task(task)

    with pytest.raises(AlreadyExistsError):
        storage.create_task(task)

    retrieved = storage.get_task(task.id)
    assert retrieved == task

    tasks = storage.list_tasks(TaskFilter(project_id=project.id))
    assert [t.id for t in tasks] == [task.id]

    updated = storage.update_task(
        task.id, {"title": "Updated Task Title", "status": TaskStatus.IN_PROGRESS}
    )
    assert updated.card.title == "Updated Task Title"
    assert updated.card.status is TaskStatus.IN_PROGRESS
    assert storage.get_task(task.id).card.title == "Updated Task Title"

    storage.delete_task(task.id)
    with pytest.raises(NotFoundError):
        storage.get_task(task.id)


def test_tasks_persist_across_instances(tmp_path, storage, project):
    task = new_task(project.id, "Persisted", "Kept on disk")
    task.context.files = ["auth.go"]
    storage.create_task(task)
    reopened = FileStorage(tmp_path)
    assert reopened.get_task(task.id) == task


def test_update_ignores_unknown_keys_and_bad_status(storage, project):
    task = new_task(project.id, "Task", "Desc")
    storage.create_task(task)
    updated = storage.update_task(task.id, {"status": "nonsense", "files": ["x"]})
    assert updated.card.status is TaskStatus.PLANNED
    assert updated.context.files == []


def test_missing_task_errors(storage, project):
    with pytest.raises(NotFoundError):
        storage.update_task("missing", {"title": "x"})
    with pytest.raises(NotFoundError):
        storage.delete_task("missing")


def test_task_filtering(storage):
    project1 = new_project("Project 1", "First project", "Goal 1")
    project2 = new_project("Project 2", "Second project", "Goal 2")
    storage.create_project(project1)
    storage.create_project(project2)

    task1 = new_task(project1.id, "Task 1", "Description 1")
    task2 = new_task(project1.id, "Task 2", "Description 2")
    task2.card.status = TaskStatus.IN_PROGRESS
    task3 = new_task(project2.id, "Task 3", "Description 3")
    for task in (task1, task2, task3):
        storage.create_task(task)

    assert len(storage.list_tasks(TaskFilter(project_id=project1.id))) == 2
    assert len(storage.list_tasks(TaskFilter(status=TaskStatus.PLANNED))) == 2
    both = storage.list_tasks(TaskFilter(project_id=project1.id, status=TaskStatus.PLANNED))
    assert [t.id for t in both] == [task1.id]
    assert len(storage.list_tasks()) == 3


def test_tasks_of_unregistered_project_are_not_found_by_id(storage):
    task = new_task("orphan-project", "Orphan", "No project file")
    storage.create_task(task)
    assert [t.id for t in storage.list_tasks(TaskFilter(project_id="orphan-project"))] == [task.id]
    with pytest.raises(NotFoundError):
        storage.get_task(task.id)


def test_project_operations(storage):
    project = new_project("Test Project", "A test project", "Test goal")
    storage.create_project(project)

    with pytest.raises(AlreadyExistsError):
        storage.create_project(project)

    assert storage.get_project(project.id) == project
    assert [p.id for p in storage.list_projects()] == [project.id]

    storage.set_current_project(project.id)
    assert storage.get_current_project().id == project.id

    with pytest.raises(NotFoundError):
        storage.set_current_project("non-existent")


def test_config_file_records_current_project(tmp_path, storage, project):
    storage.set_current_project(project.id)
    config = json.loads((tmp_path / ".compass" / "config.json").read_text())
    assert config == {"currentProject": project.id}


def test_no_current_project(storage):
    with pytest.raises(CompassError, match="no current project set"):
        storage.get_current_project()


def test_get_missing_project(storage):
    with pytest.raises(NotFoundError, match="project with ID nope not found"):
        storage.get_project("nope")


def test_list_projects_is_sorted_by_id(storage):
    projects = [new_project(f"P{i}", "", "") for i in range(3)]
    for created in projects:
        storage.create_project(created)
    assert [p.id for p in storage.list_projects()] == sorted(p.id for p in projects)


def test_planning_sessions(tmp_path, storage, project):
    session = new_planning_session(project.id, "Sprint Planning")
    storage.create_planning_session(session)
    with pytest.raises(AlreadyExistsError):
        storage.create_planning_session(session)

    sessions_file = tmp_path / ".compass" / "projects" / project.id / "planning" / "sessions.json"
    assert sessions_file.is_file()

    assert storage.get_planning_session(session.id) == session
    assert [s.id for s in storage.list_planning_sessions(project.id)] == [session.id]

    updated = storage.update_planning_session(
        session.id, {"status": PlanningSessionStatus.COMPLETED, "tasks": ["t1", "t2"]}
    )
    assert updated.status is PlanningSessionStatus.COMPLETED
    assert updated.tasks == ["t1", "t2"]
    assert storage.get_planning_session(session.id).tasks == ["t1", "t2"]


def test_missing_planning_session(storage, project):
    with pytest.raises(NotFoundError):
        storage.get_planning_session("missing")
    with pytest.raises(NotFoundError):
        storage.update_planning_session("missing", {"status": "aborted"})
    assert storage.list_planning_sessions(project.id) == []


def test_discoveries_round_trip(storage, project):
    discovery = new_discovery(project.id, "Users prefer OAuth", Impact.HIGH, DiscoverySource.RESEARCH)
    discovery.affected_tasks = ["task-a"]
    storage.create_discovery(discovery)
    assert storage.list_discoveries(project.id) == [discovery]
    assert storage.list_discoveries("other") == []


def test_decisions_round_trip(storage, project):
    decision = new_decision(
        project.id, "Database choice", "PostgreSQL", "Better JSON support", ["MySQL"], True
    )
    storage.create_decision(decision)
    second = new_decision(project.id, "Cache", "Redis", "Fast", [], False)
    storage.create_decision(second)
    assert storage.list_decisions(project.id) == [decision, second]


def test_corrupt_task_file_raises_on_project_listing(tmp_path, storage, project):
    tasks_file = tmp_path / ".compass" / "projects" / project.id / "tasks.json"
    tasks_file.write_text("not json")
    with pytest.raises(CompassError):
        storage.list_tasks(TaskFilter(project_id=project.id))
    assert storage.list_tasks() == []


def test_no_temporary_files_left(tmp_path, storage, project):
    task = new_task(project.id, "T", "D")
    storage.create_task(task)
    stored = storage.list_tasks(TaskFilter(project_id=project.id))
    assert [t.id for t in stored] == [task.id]
    leftovers = list((tmp_path / ".compass").rglob("*.tmp"))
    assert leftovers == []