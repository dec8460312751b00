import pytest

from compass.domain.project import new_project
from compass.errors import AlreadyExistsError, CompassError, NotFoundError
from compass.service.project_service import ProjectService
from compass.storage.memory import MemoryStorage


@pytest.fixture
def service():
    return ProjectService(MemoryStorage())


def test_create_and_get(service):
    project = new_project("Alpha", "First", "Ship it")
    service.create(project)
    fetched = service.get(project.id)
    assert fetched.name == "Alpha"
    assert fetched.goal == "Ship it"


def test_create_duplicate_raises(service):
    project = new_project("Alpha", "", "")
    service.create(project)
    with pytest.raises(AlreadyExistsError):
        service.create(project)


def test_list_returns_all(service):
    first = new_project("A", "", "")
    second = new_project("B", "", "")
    service.create(first)
    service.create(second)
    assert {p.id for p in service.list()} == {first.id, second.id}


def test_current_project(service):
    with pytest.raises(CompassError, match="no current project set"):
        service.get_current()
    project = new_project("A", "", "")
    service.create(project)
    service.set_current(project.id)
    assert service.get_current().id == project.id


def test_missing_project_raises(service):
    with pytest.raises(NotFoundError):
        service.get("non-existent")
    with pytest.raises(NotFoundError):
        service.set_current("non-existent")