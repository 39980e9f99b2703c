"""Integration tests for rubric endpoints (/api/rubrics)."""

from fastapi.testclient import TestClient

ORG = "org-1"


def _rubric_body(name: str, **overrides) -> dict:
    return {
        "name": name,
        "organization_id": ORG,
        "criteria": [
            {
                "name": "Argument",
                "max_points": 4,
                "levels": [
                    {"label": "Strong", "percentage": 100},
                    {"label": "Weak", "percentage": 25},
                ],
            }
        ],
        **overrides,
    }


def _create(client: TestClient, headers: dict, name: str, **overrides) -> dict:
    resp = client.post("/api/rubrics/", json=_rubric_body(name, **overrides), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _names(client: TestClient, headers: dict) -> list[str]:
    resp = client.get(f"/api/rubrics/?organization_id={ORG}", headers=headers)
    return [r["name"] for r in resp.json()]


def test_students_cannot_manage_rubrics(client: TestClient, student: dict):
    assert client.get(f"/api/rubrics/?organization_id={ORG}", headers=student).status_code == 403
    assert client.post("/api/rubrics/", json=_rubric_body("x"), headers=student).status_code == 403


def test_create_and_get(client: TestClient, instructor: dict):
    rubric = _create(client, instructor, "Essay")
    assert rubric["is_default"] is True
    assert rubric["created_by"] == "instructor-1"
    assert rubric["criteria"][0]["levels"][1] == {"label": "Weak", "percentage": 25.0, "description": None}

    resp = client.get(f"/api/rubrics/{rubric['id']}", headers=instructor)
    assert resp.status_code == 200
    assert resp.json()["name"] == "Essay"


def test_criteria_require_levels(client: TestClient, instructor: dict):
    body = _rubric_body("Broken")
    body["criteria"][0]["levels"] = []
    assert client.post("/api/rubrics/", json=body, headers=instructor).status_code == 422


def test_switch_default(client: TestClient, instructor: dict):
    _create(client, instructor, "Zeta")
    alpha = _create(client, instructor, "Alpha")
    assert alpha["is_default"] is False

    resp = client.post(f"/api/rubrics/{alpha['id']}/default", headers=instructor)
    assert resp.status_code == 200
    assert resp.json()["is_default"] is True
    assert _names(client, instructor) == ["Alpha", "Zeta"]


def test_update(client: TestClient, instructor: dict):
    rubric = _create(client, instructor, "Essay")
    resp = client.patch(
        f"/api/rubrics/{rubric['id']}",
        json={"name": "Long essay", "description": "For 1000+ words"},
        headers=instructor,
    )
    assert resp.status_code == 200
    assert resp.json()["name"] == "Long essay"
    assert resp.json()["criteria"] == rubric["criteria"]


def test_default_cannot_be_deleted(client: TestClient, instructor: dict):
    default = _create(client, instructor, "Essay")
    other = _create(client, instructor, "Lab report")

    resp = client.delete(f"/api/rubrics/{default['id']}", headers=instructor)
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "RUBRIC_IS_DEFAULT"

    assert client.delete(f"/api/rubrics/{other['id']}", headers=instructor).status_code == 204
    assert client.get(f"/api/rubrics/{other['id']}", headers=instructor).status_code == 404


def test_seed_default(client: TestClient, instructor: dict):
    resp = client.post("/api/rubrics/seed-default", json={"organization_id": ORG}, headers=instructor)
    assert resp.status_code == 200
    seeded = resp.json()
    assert seeded["is_default"] is True
    assert [c["max_points"] for c in seeded["criteria"]] == [4, 3, 2, 1]

    again = client.post("/api/rubrics/seed-default", json={"organization_id": ORG}, headers=instructor)
    assert again.json()["id"] == seeded["id"]
    assert len(_names(client, instructor)) == 1
