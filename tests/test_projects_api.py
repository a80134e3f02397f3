"""
Project API tests — CRUD, people rows, holidays, summary upsert,
stateless calculation endpoints.
"""

from estimator import models


def _create_project(client, payload):
    resp = client.post("/api/projects/", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


# ============================================================
# Projects
# ============================================================

def test_create_project_applies_defaults_and_summary(client, project_payload):
    project = _create_project(client, project_payload)

    assert project["currency_code"] == "THB"
    assert project["currency_symbol"] == "฿"
    assert project["hours_per_day"] == 8.0
    assert len(project["people"]) == 1
    assert project["days"]["planned_days"] == 13
    assert project["summary"]["subtotal"] == 1000
    assert project["summary"]["proposed_price"] == 1000


def test_create_project_without_people_has_no_summary(client):
    project = _create_project(client, {"name": "Discovery", "client": "Acme"})
    assert project["people"] == []
    assert project["summary"] is None


def test_create_project_rejects_margin_of_100(client, project_payload):
    project_payload.update(pricing_mode="MARGIN", target_margin_percent=100)
    resp = client.post("/api/projects/", json=project_payload)
    assert resp.status_code == 422


def test_get_missing_project_404(client):
    resp = client.get("/api/projects/999")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Project not found"


def test_list_projects(client, project_payload):
    _create_project(client, project_payload)
    _create_project(client, {"name": "Second", "client": "Beta"})

    resp = client.get("/api/projects/")
    assert resp.status_code == 200
    names = {p["name"] for p in resp.json()}
    assert names == {"Website Rebuild", "Second"}
    assert "people" not in resp.json()[0]


def test_update_project_recomputes_summary(client, project_payload):
    project = _create_project(client, project_payload)

    resp = client.patch(f"/api/projects/{project['id']}", json={
        "pricing_mode": "ROI",
        "target_roi_percent": 20,
        "tax_enabled": True,
        "tax_percent": 7,
    })
    assert resp.status_code == 200
    summary = resp.json()["summary"]
    assert summary["tax"] == 70
    assert summary["cost"] == 1070
    assert summary["proposed_price"] == 1284
    assert summary["roi_percent"] == 20


def test_update_project_rejects_null_required_fields(client, project_payload):
    project = _create_project(client, project_payload)

    for field in ("name", "client", "pricing_mode", "tax_enabled"):
        resp = client.patch(f"/api/projects/{project['id']}", json={field: None})
        assert resp.status_code == 422, field

    # nullable fields may still be cleared
    resp = client.patch(f"/api/projects/{project['id']}", json={"fx_note": None, "proposed_price": None})
    assert resp.status_code == 200
    assert client.get(f"/api/projects/{project['id']}").json()["name"] == "Website Rebuild"


def test_delete_project_cascades(client, db, project_payload):
    project = _create_project(client, project_payload)

    resp = client.delete(f"/api/projects/{project['id']}")
    assert resp.status_code == 200
    assert db.query(models.ProjectPerson).count() == 0
    assert db.query(models.ProjectSummary).count() == 0
    assert client.get(f"/api/projects/{project['id']}").status_code == 404


# ============================================================
# Summary
# ============================================================

def test_summary_upserts_single_row(client, db, project_payload):
    project = _create_project(client, project_payload)

    first = client.get(f"/api/projects/{project['id']}/summary")
    assert first.status_code == 200
    body = first.json()
    assert body["totals"] == {
        "subtotal": 1000.0,
        "tax": 0.0,
        "cost": 1000.0,
        "proposed": 1000.0,
        "roi_percent": 0.0,
        "margin_percent": 0.0,
    }
    assert body["calculation_input"]["pricing_mode"] == "DIRECT"

    client.patch(f"/api/projects/{project['id']}", json={"pricing_mode": "MARGIN", "target_margin_percent": 25})
    second = client.get(f"/api/projects/{project['id']}/summary").json()
    assert second["totals"]["proposed"] == 1333.33
    assert second["summary"]["margin_percent"] == 25

    assert db.query(models.ProjectSummary).count() == 1


def test_summary_rejects_empty_project(client):
    project = _create_project(client, {"name": "Empty", "client": "Nobody"})

    resp = client.get(f"/api/projects/{project['id']}/summary")
    assert resp.status_code == 400
    detail = resp.json()["detail"]
    assert "At least one person row is required" in detail["errors"]


def test_summary_business_days_in_calendar_mode(client, project_payload):
    project_payload.update(
        calendar_mode=True,
        start_date="2024-01-01",
        end_date="2024-01-07",
        working_week="MON_FRI",
        holidays=[
            {"date": "2024-01-02", "name": "Company Day", "treatment": "EXCLUDE"},
            {"date": "2024-01-03", "name": "Info only", "treatment": "INFO"},
        ],
    )
    project = _create_project(client, project_payload)

    body = client.get(f"/api/projects/{project['id']}/summary").json()
    assert body["days"]["business_days"] == 4


def test_non_billable_person_excluded(client, project_payload):
    project_payload["people"].append({
        "person_label": "Shadowing Junior",
        "price_per_day": 500,
        "allocated_days": 10,
        "non_billable": True,
    })
    project = _create_project(client, project_payload)
    assert project["summary"]["subtotal"] == 1000


# ============================================================
# People
# ============================================================

def test_add_update_delete_person(client, project_payload):
    project = _create_project(client, project_payload)
    pid = project["id"]

    resp = client.post(f"/api/projects/{pid}/people", json={
        "person_label": "Designer",
        "price_per_day": 100,
        "allocated_days": 10,
        "weekend_multiplier": 1.5,
        "holiday_multiplier": 2,
    })
    assert resp.status_code == 201
    person = resp.json()
    assert person["weekend_multiplier"] == 1.5

    summary = client.get(f"/api/projects/{pid}").json()["summary"]
    assert summary["subtotal"] == 4000  # 1000 + 100×10×1.5×2

    resp = client.patch(f"/api/projects/{pid}/people/{person['id']}", json={"utilization_percent": 50})
    assert resp.status_code == 200
    assert client.get(f"/api/projects/{pid}").json()["summary"]["subtotal"] == 2500

    resp = client.delete(f"/api/projects/{pid}/people/{person['id']}")
    assert resp.status_code == 200
    assert client.get(f"/api/projects/{pid}").json()["summary"]["subtotal"] == 1000


def test_person_requires_positive_rate(client, project_payload):
    project = _create_project(client, project_payload)
    resp = client.post(f"/api/projects/{project['id']}/people", json={
        "person_label": "Free intern",
        "price_per_day": 0,
    })
    assert resp.status_code == 422


def test_update_person_rejects_null_rate(client, project_payload):
    project = _create_project(client, project_payload)
    person_id = project["people"][0]["id"]

    resp = client.patch(f"/api/projects/{project['id']}/people/{person_id}", json={"price_per_day": None})
    assert resp.status_code == 422
    resp = client.patch(f"/api/projects/{project['id']}/people/{person_id}", json={"person_label": None})
    assert resp.status_code == 422

    # clearing a multiplier is allowed
    resp = client.patch(f"/api/projects/{project['id']}/people/{person_id}", json={"weekend_multiplier": None})
    assert resp.status_code == 200
    assert resp.json()["price_per_day"] == 100


def test_deleting_last_person_clears_summary(client, db, project_payload):
    project = _create_project(client, project_payload)
    person_id = project["people"][0]["id"]
    assert project["summary"]["subtotal"] == 1000

    resp = client.delete(f"/api/projects/{project['id']}/people/{person_id}")
    assert resp.status_code == 200

    assert client.get(f"/api/projects/{project['id']}").json()["summary"] is None
    assert db.query(models.ProjectSummary).count() == 0


def test_person_unknown_team_member_404(client, project_payload):
    project = _create_project(client, project_payload)
    resp = client.post(f"/api/projects/{project['id']}/people", json={
        "person_label": "Ghost",
        "price_per_day": 100,
        "team_member_id": 12345,
    })
    assert resp.status_code == 404


def test_person_on_other_project_404(client, project_payload):
    first = _create_project(client, project_payload)
    second = _create_project(client, {"name": "Other", "client": "Beta"})
    person_id = first["people"][0]["id"]

    resp = client.delete(f"/api/projects/{second['id']}/people/{person_id}")
    assert resp.status_code == 404


# ============================================================
# Holidays
# ============================================================

def test_holiday_crud(client, project_payload):
    project = _create_project(client, project_payload)
    pid = project["id"]

    resp = client.post(f"/api/projects/{pid}/holidays", json={"date": "2024-04-13", "name": "Songkran"})
    assert resp.status_code == 201
    holiday = resp.json()
    assert holiday["treatment"] == "EXCLUDE"

    assert len(client.get(f"/api/projects/{pid}/holidays").json()) == 1
    assert client.delete(f"/api/projects/{pid}/holidays/{holiday['id']}").status_code == 200
    assert client.get(f"/api/projects/{pid}/holidays").json() == []


def test_holiday_ics_import_skips_existing_dates(client, project_payload):
    project = _create_project(client, project_payload)
    pid = project["id"]
    client.post(f"/api/projects/{pid}/holidays", json={"date": "2024-01-01", "name": "New Year"})

    ics = (
        "BEGIN:VCALENDAR\n"
        "BEGIN:VEVENT\nDTSTART;VALUE=DATE:20240101\nSUMMARY:New Year's Day\nEND:VEVENT\n"
        "BEGIN:VEVENT\nDTSTART;VALUE=DATE:20240413\nSUMMARY:Songkran\nEND:VEVENT\n"
        "END:VCALENDAR\n"
    )
    resp = client.post(
        f"/api/projects/{pid}/holidays/import",
        files={"file": ("holidays.ics", ics.encode(), "text/calendar")},
    )
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "events": 2, "created": 1, "skipped": 1}

    names = [h["name"] for h in client.get(f"/api/projects/{pid}/holidays").json()]
    assert names == ["New Year", "Songkran"]


def test_holiday_import_rejects_non_ics(client, project_payload):
    project = _create_project(client, project_payload)
    resp = client.post(
        f"/api/projects/{project['id']}/holidays/import",
        files={"file": ("holidays.txt", b"nope", "text/plain")},
    )
    assert resp.status_code == 400


# ============================================================
# Stateless calculation
# ============================================================

def test_calculate_endpoint(client):
    resp = client.post("/api/calculate/", json={
        "rows": [{"pricePerDay": 100, "allocatedDays": 10, "utilizationPercent": 100}],
        "taxEnabled": False,
        "taxPercent": 0,
        "pricingMode": "MARGIN",
        "targetMargin": 25,
    })
    assert resp.status_code == 200
    assert resp.json()["proposed"] == 1333.33
    assert resp.json()["margin_percent"] == 25


def test_calculate_endpoint_rejects_invalid_input(client):
    resp = client.post("/api/calculate/", json={
        "rows": [{"price_per_day": 100, "allocated_days": 10, "utilization_percent": 100}],
        "pricing_mode": "MARGIN",
        "target_margin": 100,
    })
    assert resp.status_code == 400
    assert "Target margin must be between 0 and 100" in resp.json()["detail"]["errors"]


def test_validate_endpoint(client):
    resp = client.post("/api/calculate/validate", json={"rows": []})
    assert resp.json() == {"valid": False, "errors": ["At least one person row is required"]}


def test_business_days_endpoint(client):
    resp = client.post("/api/calculate/business-days", json={
        "start_date": "2024-01-01",
        "end_date": "2024-01-05",
        "working_week": "MON_FRI",
        "holidays": ["2024-01-02"],
    })
    assert resp.status_code == 200
    assert resp.json()["business_days"] == 4


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"
