from datetime import timedelta

from compass.domain.project import Project, new_project


def test_new_project_fields():
    project = new_project("Test Project", "A test project", "Build software")
    assert project.id
    assert project.name == "Test Project"
    assert project.description == "A test project"
    assert project.goal == "Build software"
    assert project.created_at == project.updated_at
    assert project.created_at.utcoffset() == timedelta(0)


def test_new_projects_have_unique_ids():
    ids = {new_project("n", "d", "g").id for _ in range(5)}
    assert len(ids) == 5


def test_to_dict_keys():
    project = new_project("Name", "Desc", "Goal")
    data = project.to_dict()
    assert set(data) == {"id", "name", "description", "goal", "createdAt", "updatedAt"}
    assert data["id"] == project.id
    assert data["goal"] == "Goal"


def test_round_trip():
    project = new_project("Name", "Desc", "Goal")
    assert Project.from_dict(project.to_dict()) == project


def test_from_dict_tolerates_missing_fields():
    project = Project.from_dict({"id": "abc", "name": "Only name"})
    assert project.id == "abc"
    assert project.name == "Only name"
    assert project.description == ""
    assert project.goal == ""
    assert project.created_at.year == 1