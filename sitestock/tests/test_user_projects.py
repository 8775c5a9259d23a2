import pytest

from sitestock.app.core.errors import Conflict, NotFound
from sitestock.app.db.models.core_types import Role
from sitestock.app.db.session import unit_of_work
from sitestock.services.projects import assign_user_to_project, list_user_projects


def test_assignments_listed_by_project_name(db_session, users, make_project, ceo):
    site = users[Role.onsite_team]
    harbor = make_project(name="Harbor Heights")
    atrium = make_project(name="Atrium Lofts")
    make_project(name="Unassigned Row")

    with unit_of_work(db_session):
        assign_user_to_project(db_session, user_id=site.id, project_id=harbor.id, actor=ceo)
        assign_user_to_project(db_session, user_id=site.id, project_id=atrium.id, actor=ceo)

    assert [p.name for p in list_user_projects(db_session, site.id)] == ["Atrium Lofts", "Harbor Heights"]
    assert list_user_projects(db_session, users[Role.warehouse_admin].id) == []


def test_assignment_errors(db_session, users, make_project, ceo):
    """
    GIVEN
    - une affectation existante

    THEN
    - la répéter -> Conflict
    - utilisateur ou projet inconnu -> NotFound
    """
    site = users[Role.onsite_team]
    project = make_project()
    with unit_of_work(db_session):
        assign_user_to_project(db_session, user_id=site.id, project_id=project.id, actor=ceo)

    with pytest.raises(Conflict):
        with unit_of_work(db_session):
            assign_user_to_project(db_session, user_id=site.id, project_id=project.id, actor=ceo)
    with pytest.raises(NotFound) as exc:
        with unit_of_work(db_session):
            assign_user_to_project(db_session, user_id=999999, project_id=project.id, actor=ceo)
    assert exc.value.field == "user_id"
    with pytest.raises(NotFound) as exc:
        with unit_of_work(db_session):
            assign_user_to_project(db_session, user_id=site.id, project_id=999999, actor=ceo)
    assert exc.value.field == "project_id"


def test_user_projects_over_http(client, users, auth_headers):
    site_id = users[Role.onsite_team].id
    boss, site = auth_headers[Role.ceo_admin], auth_headers[Role.onsite_team]
    project = client.post("/v1/projects", json={"name": "Sunset Condos"}, headers=boss).json()

    body = {"user_id": site_id, "project_id": project["id"]}
    assert client.post("/v1/user-projects", json=body, headers=auth_headers[Role.warehouse_admin]).status_code == 403
    r = client.post("/v1/user-projects", json=body, headers=boss)
    assert r.status_code == 201
    assert client.post("/v1/user-projects", json=body, headers=boss).status_code == 409

    mine = client.get(f"/v1/user-projects/{site_id}", headers=site).json()
    assert [p["name"] for p in mine] == ["Sunset Condos"]

    other = users[Role.warehouse_admin].id
    assert client.get(f"/v1/user-projects/{other}", headers=site).status_code == 403
    assert client.get(f"/v1/user-projects/{site_id}", headers=auth_headers[Role.warehouse_admin]).status_code == 200
