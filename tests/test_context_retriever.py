from datetime import timedelta

import pytest

from compass.domain.context import NextTaskCriteria, SearchOptions
from compass.domain.project import new_project
from compass.domain.task import Confidence, TaskStatus, new_task
from compass.errors import CompassError, NotFoundError
from compass.service.context_retriever import (
    ContextRetriever,
    extract_words,
    has_shared_files,
    has_similar_content,
)
from compass.service.header_generator import HeaderGenerator
from compass.storage.memory import MemoryStorage


@pytest.fixture
def setup():
    storage = MemoryStorage()
    project = new_project("Test Project", "A test project", "Build software")
    storage.create_project(project)
    return storage, project, ContextRetriever(storage, storage)


def test_get_task_context_collects_dependencies_children_and_related(setup):
    storage, project, retriever = setup
    dep = new_task(project.id, "Setup database", "Configure PostgreSQL")
    child = new_task(project.id, "Child", "Sub work")
    sibling = new_task(project.id, "Sibling", "Other work")
    sibling.context.files = ["AUTH.go"]
    unrelated = new_task(project.id, "Zzz", "Nothing")
    task = new_task(project.id, "Auth", "Implement auth")
    task.context.dependencies = [dep.id, "some textual dependency"]
    task.card.children = [child.id, "missing-child"]
    task.context.files = ["auth.go"]
    for t in (dep, child, sibling, unrelated, task):
        storage.create_task(t)

    ctx = retriever.get_task_context(task.id)
    assert ctx.task.id == task.id
    assert ctx.project.id == project.id
    assert [t.id for t in ctx.dependencies] == [dep.id]
    assert [t.id for t in ctx.children] == [child.id]
    assert [t.id for t in ctx.related] == [sibling.id]


def test_get_task_context_refreshes_stale_header(setup):
    storage, project, retriever = setup
    task = new_task(project.id, "Deploy", "Deploy the application")
    task.context.last_verified = None
    storage.create_task(task)

    ctx = retriever.get_task_context(task.id)
    assert ctx.task.context.contextual_header == HeaderGenerator(200).generate(task, project)
    assert "Build software" in ctx.task.context.contextual_header
    assert ctx.task.context.last_verified is not None


def test_get_task_context_unknown_task(setup):
    _, _, retriever = setup
    with pytest.raises(NotFoundError):
        retriever.get_task_context("missing")


def test_related_is_capped_at_five(setup):
    storage, project, retriever = setup
    task = new_task(project.id, "Main", "Main work")
    task.context.files = ["shared.py"]
    storage.create_task(task)
    for i in range(7):
        other = new_task(project.id, f"Other {i}", "x")
        other.context.files = ["shared.py"]
        storage.create_task(other)
    ctx = retriever.get_task_context(task.id)
    assert len(ctx.related) == 5
    assert all(t.id != task.id for t in ctx.related)


def test_search_delegates_to_hybrid_search(setup):
    storage, project, retriever = setup
    task = new_task(project.id, "Implement authentication", "Add JWT-based authentication")
    storage.create_task(task)
    results = retriever.search("authentication", SearchOptions(project_id=project.id, limit=10))
    assert [r.task.id for r in results] == [task.id]
    assert results[0].match_type == "keyword"


def test_get_next_task_prefers_planned_and_honours_exclude(setup):
    storage, project, retriever = setup
    planned = new_task(project.id, "Planned", "p")
    blocked = new_task(project.id, "Blocked", "b")
    blocked.card.status = TaskStatus.BLOCKED
    done = new_task(project.id, "Done", "d")
    done.card.status = TaskStatus.COMPLETED
    for t in (planned, blocked, done):
        storage.create_task(t)

    assert retriever.get_next_task(NextTaskCriteria(project.id)).id == planned.id
    chosen = retriever.get_next_task(NextTaskCriteria(project.id, exclude=[planned.id]))
    assert chosen.id == blocked.id


def test_get_next_task_without_candidates(setup):
    storage, project, retriever = setup
    done = new_task(project.id, "Done", "d")
    done.card.status = TaskStatus.COMPLETED
    storage.create_task(done)
    with pytest.raises(CompassError, match="no suitable next task found"):
        retriever.get_next_task(NextTaskCriteria(project.id))


def test_score_task_candidates_orders_by_readiness(setup):
    _, project, retriever = setup
    ready = new_task(project.id, "Ready", "r")
    ready.context.confidence = Confidence.HIGH
    ready.criteria.acceptance = ["works"]
    waiting = new_task(project.id, "Waiting", "w")
    waiting.card.status = TaskStatus.BLOCKED
    waiting.context.dependencies = ["a", "b"]
    waiting.context.confidence = Confidence.LOW
    old = new_task(project.id, "Old", "o")
    fresh = new_task(project.id, "Fresh", "f")
    old.card.created_at -= timedelta(days=30)

    scores = {s.task.id: s.score for s in retriever.score_task_candidates([ready, waiting, old, fresh])}
    assert scores[ready.id] > scores[fresh.id] > scores[old.id] > scores[waiting.id]


def test_check_sufficiency_reports_missing_and_stale(setup):
    storage, project, retriever = setup
    task = new_task(project.id, "Bare", "")
    task.card.status = TaskStatus.IN_PROGRESS
    task.context.dependencies = ["nope"]
    storage.create_task(task)

    report = retriever.check_sufficiency(task.id)
    assert report.task_id == task.id
    assert report.sufficient is False
    assert report.missing == ["description", "acceptance criteria", "affected files"]
    assert report.stale == ["dependency: nope"]


def test_check_sufficiency_complete_task(setup):
    storage, project, retriever = setup
    task = new_task(project.id, "Full", "Has everything")
    task.criteria.acceptance = ["works"]
    storage.create_task(task)
    report = retriever.check_sufficiency(task.id)
    assert report.sufficient is True
    assert report.missing == []
    assert report.stale == []


def test_check_sufficiency_stale_header(setup):
    storage, project, retriever = setup
    task = new_task(project.id, "Old", "desc")
    task.criteria.acceptance = ["ok"]
    task.context.last_verified = None
    storage.create_task(task)
    assert retriever.check_sufficiency(task.id).stale == ["contextual header"]


def test_word_helpers():
    assert extract_words("Hello, world! a an (test)") == {"hello", "world", "test"}
    a = new_task("p", "Implement authentication", "Add login flow")
    b = new_task("p", "Authentication refactor", "Rework login")
    c = new_task("p", "Database", "Setup")
    assert has_similar_content(a, b) is True
    assert has_similar_content(a, c) is False
    a.context.files = ["Auth.go"]
    b.context.files = ["auth.GO", "x.py"]
    assert has_shared_files(a, b) is True
    assert has_shared_files(a, c) is False