"""
Team library API tests — list/filter/sort/paginate, CRUD, bulk actions,
CSV import preview/commit and export.
"""

from estimator import models


def _member(client, **overrides):
    data = {
        "name": "Jane Smith",
        "role_name": "Developer",
        "level": "SENIOR",
        "default_rate_per_day": 3500,
    }
    data.update(overrides)
    resp = client.post("/api/team/", json=data)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _seed_team(client):
    _member(client, name="Alice", role_name="Developer", level="TEAM_LEAD", default_rate_per_day=4500)
    _member(client, name="Bob", role_name="Designer", level="JUNIOR", default_rate_per_day=2500)
    _member(client, name="Carol", role_name="Developer", level="JUNIOR", default_rate_per_day=2600,
            status="INACTIVE")
    _member(client, name="Dan", role_name="QA Engineer", level="SENIOR", default_rate_per_day=3000)


def _upload(client, content, filename="team.csv", commit=False):
    return client.post(
        f"/api/team/import?commit={'true' if commit else 'false'}",
        files={"file": (filename, content.encode(), "text/csv")},
    )


# ============================================================
# CRUD
# ============================================================

def test_create_member_matches_rate_card_role(client, db):
    role = models.RateCardRole(name="Developer")
    db.add(role)
    db.commit()

    member = _member(client, role_name="developer")
    assert member["role_id"] == role.id
    assert member["status"] == "ACTIVE"
    assert member["default_rate_per_day"] == 3500


def test_create_member_rejects_zero_rate(client):
    resp = client.post("/api/team/", json={
        "name": "Nobody",
        "role_name": "Developer",
        "level": "JUNIOR",
        "default_rate_per_day": 0,
    })
    assert resp.status_code == 422


def test_get_update_member(client):
    member = _member(client)

    resp = client.patch(f"/api/team/{member['id']}", json={"default_rate_per_day": 3800, "notes": "Rate review"})
    assert resp.status_code == 200
    assert resp.json()["default_rate_per_day"] == 3800

    fetched = client.get(f"/api/team/{member['id']}").json()
    assert fetched["notes"] == "Rate review"


def test_update_member_rejects_null_required_fields(client):
    member = _member(client)

    for field in ("name", "role_name", "default_rate_per_day", "status"):
        resp = client.patch(f"/api/team/{member['id']}", json={field: None})
        assert resp.status_code == 422, field

    resp = client.patch(f"/api/team/{member['id']}", json={"notes": None})
    assert resp.status_code == 200
    assert resp.json()["default_rate_per_day"] == 3500


def test_get_missing_member_404(client):
    assert client.get("/api/team/999").status_code == 404


def test_delete_unreferenced_member(client):
    member = _member(client)
    assert client.delete(f"/api/team/{member['id']}").json() == {"success": True}
    assert client.get(f"/api/team/{member['id']}").status_code == 404


def test_delete_referenced_member_conflicts(client, project_payload):
    member = _member(client)
    project_payload["people"][0]["team_member_id"] = member["id"]
    assert client.post("/api/projects/", json=project_payload).status_code == 201

    resp = client.delete(f"/api/team/{member['id']}")
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "REFERENCED_BY_PROJECTS"
    assert client.get(f"/api/team/{member['id']}").status_code == 200


# ============================================================
# List
# ============================================================

def test_list_defaults_to_name_order(client):
    _seed_team(client)
    body = client.get("/api/team/").json()
    assert [m["name"] for m in body["data"]] == ["Alice", "Bob", "Carol", "Dan"]
    assert body["pagination"] == {"page": 1, "size": 25, "total": 4, "pages": 1}


def test_list_filters(client):
    _seed_team(client)

    names = lambda params: [m["name"] for m in client.get("/api/team/", params=params).json()["data"]]

    assert names({"status": "INACTIVE"}) == ["Carol"]
    assert names({"level": "JUNIOR"}) == ["Bob", "Carol"]
    assert names({"search": "develop"}) == ["Alice", "Carol"]
    assert names({"search": "dan"}) == ["Dan"]
    assert names({"search": "develop", "status": "ACTIVE"}) == ["Alice"]


def test_list_sorting(client):
    _seed_team(client)

    desc = client.get("/api/team/", params={"sort": "default_rate_per_day:desc"}).json()["data"]
    assert [m["name"] for m in desc] == ["Alice", "Dan", "Carol", "Bob"]

    unknown = client.get("/api/team/", params={"sort": "password:desc"}).json()["data"]
    assert [m["name"] for m in unknown] == ["Alice", "Bob", "Carol", "Dan"]


def test_list_pagination(client):
    _seed_team(client)
    body = client.get("/api/team/", params={"page": 2, "size": 3}).json()
    assert [m["name"] for m in body["data"]] == ["Dan"]
    assert body["pagination"] == {"page": 2, "size": 3, "total": 4, "pages": 2}

    assert client.get("/api/team/", params={"size": 101}).status_code == 422
    assert client.get("/api/team/", params={"page": 0}).status_code == 422


# ============================================================
# Bulk
# ============================================================

def test_bulk_deactivate_and_activate(client):
    _seed_team(client)
    ids = [m["id"] for m in client.get("/api/team/").json()["data"]]

    resp = client.post("/api/team/bulk", json={"action": "deactivate", "ids": ids[:2]})
    assert resp.json() == {"success": True, "action": "deactivate", "affected": 2}
    assert client.get("/api/team/", params={"status": "INACTIVE"}).json()["pagination"]["total"] == 3

    client.post("/api/team/bulk", json={"action": "activate", "ids": ids})
    assert client.get("/api/team/", params={"status": "INACTIVE"}).json()["pagination"]["total"] == 0


def test_bulk_delete_blocked_by_project_reference(client, project_payload):
    keep = _member(client, name="Referenced")
    spare = _member(client, name="Spare")
    project_payload["people"][0]["team_member_id"] = keep["id"]
    client.post("/api/projects/", json=project_payload)

    resp = client.post("/api/team/bulk", json={"action": "delete", "ids": [keep["id"], spare["id"]]})
    assert resp.status_code == 409
    assert resp.json()["detail"]["referenced_members"] == [{"id": keep["id"], "name": "Referenced"}]
    assert client.get("/api/team/").json()["pagination"]["total"] == 2

    resp = client.post("/api/team/bulk", json={"action": "delete", "ids": [spare["id"]]})
    assert resp.json()["affected"] == 1


def test_bulk_rejects_unknown_action(client):
    resp = client.post("/api/team/bulk", json={"action": "archive", "ids": [1]})
    assert resp.status_code == 422


# ============================================================
# CSV import
# ============================================================

VALID_CSV = (
    "name,role,level,defaultRatePerDay,notes,status\n"
    "Alice,Developer,Team Lead,4500,,Active\n"
    '"Smith, Jane",Designer,senior,3500,"Prefers ""Figma""",\n'
    "Broken,Developer,Principal,4000,,\n"
    "Free,QA Engineer,Junior,0,,\n"
)


def test_import_preview_does_not_write(client, db):
    resp = _upload(client, VALID_CSV)
    assert resp.status_code == 200
    body = resp.json()

    assert body["preview"] is True
    assert body["summary"] == {"total": 4, "valid": 2, "invalid": 2}
    assert body["valid_sample"][0]["level"] == "TEAM_LEAD"
    assert body["valid_sample"][1]["name"] == "Smith, Jane"
    assert body["valid_sample"][1]["notes"] == 'Prefers "Figma"'
    assert body["valid_sample"][1]["status"] == "ACTIVE"
    assert [r["row"] for r in body["invalid_sample"]] == [4, 5]

    assert db.query(models.TeamMember).count() == 0


def test_import_commit_creates_valid_rows(client, db):
    db.add(models.RateCardRole(name="Designer"))
    db.commit()

    resp = _upload(client, VALID_CSV, commit=True)
    assert resp.status_code == 200
    body = resp.json()
    assert body["preview"] is False
    assert body["created"] == 2
    assert body["summary"]["created"] == 2
    assert len(body["invalid_rows"]) == 2

    designer = db.query(models.TeamMember).filter(models.TeamMember.name == "Smith, Jane").one()
    assert designer.role_id is not None
    assert designer.level == models.RoleLevel.SENIOR


def test_import_commit_without_valid_rows(client):
    resp = _upload(client, "name,role,level,defaultRatePerDay\nX,Dev,Boss,1\n", commit=True)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "No valid rows to import"


def test_import_rejects_missing_required_headers(client):
    resp = _upload(client, "name,level,defaultRatePerDay\nAlice,Senior,3500\n")
    assert resp.status_code == 400
    detail = resp.json()["detail"]
    assert detail["error"] == "Invalid CSV headers"
    assert "role" in detail["missing"]


def test_import_rejects_wrong_extension(client):
    resp = _upload(client, VALID_CSV, filename="team.xlsx")
    assert resp.status_code == 400


def test_import_rejects_empty_file(client):
    resp = _upload(client, "\n\n")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "CSV file is empty"


# ============================================================
# CSV export
# ============================================================

def test_export_csv(client):
    _member(client, name="Alice", notes="=HYPERLINK(\"http://x\")")
    _member(client, name="Bob", level="JUNIOR", default_rate_per_day=2500, status="INACTIVE")

    resp = client.get("/api/team/export.csv")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert "team-members-" in resp.headers["content-disposition"]

    lines = resp.text.strip().split("\n")
    assert lines[0] == "name,role,level,defaultRatePerDay,notes,status"
    assert "'=HYPERLINK" in lines[1]
    assert lines[1].startswith("Alice,Developer,SENIOR,3500.00,")
    assert lines[2] == "Bob,Developer,JUNIOR,2500.00,,INACTIVE"


def test_export_respects_filters(client):
    _seed_team(client)
    resp = client.get("/api/team/export.csv", params={"status": "INACTIVE"})
    lines = resp.text.strip().split("\n")
    assert len(lines) == 2
    assert lines[1].startswith("Carol,")


def test_export_reimports_cleanly(client):
    _seed_team(client)
    exported = client.get("/api/team/export.csv").text

    body = _upload(client, exported).json()
    assert body["summary"] == {"total": 4, "valid": 4, "invalid": 0}
