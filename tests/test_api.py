# tests/test_api.py
import uuid

from mealgate.models.hygiene import SCORE_FIELDS
from mealgate.routers import health
from tests.conftest import add_allergy, record_hygiene


async def test_health_needs_no_headers(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


async def test_ready_reports_database(client, monkeypatch):
    async def down():
        return False

    monkeypatch.setattr(health, "check_db_connectivity", down)

    resp = await client.get("/ready")
    assert resp.status_code == 503
    assert resp.json() == {"db": "error"}


async def test_missing_tenant_is_401(client, headers, world):
    headers.pop("X-Tenant-ID")

    resp = await client.post(
        "/allergen-checks/check",
        json={"student_id": world.student_id, "variant_id": world.variant["plain"]},
        headers=headers,
    )

    assert resp.status_code == 401
    assert resp.json()["code"] == "MISSING_TENANT_CONTEXT"
    assert resp.headers["X-Error-Code"] == "MISSING_TENANT_CONTEXT"


async def test_token_checked_before_tenant(client, headers, world):
    headers.pop("X-Service-Token")
    headers.pop("X-Tenant-ID")

    resp = await client.get(f"/kitchens/{world.kitchen_id}/can-serve", headers=headers)

    assert resp.status_code == 401
    assert resp.json()["code"] == "INVALID_SERVICE_TOKEN"


async def test_bad_service_token_is_401(client, headers, world):
    headers["X-Service-Token"] = "wrong"

    resp = await client.get(f"/kitchens/{world.kitchen_id}/can-serve", headers=headers)

    assert resp.status_code == 401
    assert resp.json()["code"] == "INVALID_SERVICE_TOKEN"


async def test_check_unsafe_is_200_and_unknown_is_404(client, headers, db, world):
    await add_allergy(db, world, "peanut")

    unsafe = await client.post(
        "/allergen-checks/check",
        json={"student_id": world.student_id, "variant_id": world.variant["peanut"]},
        headers=headers,
    )
    missing = await client.post(
        "/allergen-checks/check",
        json={"student_id": world.student_id, "variant_id": str(uuid.uuid4())},
        headers=headers,
    )

    assert unsafe.status_code == 200
    assert unsafe.json()["safe"] is False
    assert unsafe.json()["outcome"] == "EVALUATED"
    assert missing.status_code == 404
    assert missing.json()["code"] == "NOT_FOUND"


async def test_batch_and_history(client, headers, db, world):
    await add_allergy(db, world, "shellfish")

    resp = await client.post(
        "/allergen-checks/batch",
        json={
            "student_id": world.student_id,
            "variant_ids": [world.variant["plain"], world.variant["shellfish"], str(uuid.uuid4())],
        },
        headers=headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert (body["total"], body["safe"], body["unsafe"]) == (3, 1, 2)

    history = await client.get(
        "/allergen-checks/history",
        params={"student_id": world.student_id, "limit": 10},
        headers=headers,
    )
    assert history.status_code == 200
    assert len(history.json()) == 3
    assert {row["outcome"] for row in history.json()} == {"EVALUATED", "NOT_FOUND"}


async def test_override_endpoint(client, headers, db, world):
    await add_allergy(db, world, "shellfish")
    await add_allergy(db, world, "peanut")
    payload = {"student_id": world.student_id, "variant_id": world.variant["shellfish"], "reason": "supervised"}

    no_user = dict(headers)
    no_user.pop("X-User-ID")
    resp = await client.post("/allergen-checks/overrides", json=payload, headers=no_user)
    assert resp.status_code == 401
    assert resp.json()["code"] == "MISSING_USER_CONTEXT"

    resp = await client.post("/allergen-checks/overrides", json=payload, headers=headers)
    assert resp.status_code == 201
    assert resp.json()["success"] is True

    payload["variant_id"] = world.variant["peanut"]
    resp = await client.post("/allergen-checks/overrides", json=payload, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "VALIDATION_ERROR"

    listed = await client.get("/allergen-checks/overrides", headers=headers)
    assert [o["authorized_by"] for o in listed.json()] == ["manager-1"]


async def test_hygiene_endpoints_and_menu_can_serve(client, headers, world):
    resp = await client.get(f"/menus/{world.menu_id}/can-serve", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["allowed"] is False
    assert resp.json()["gate"] == "HYGIENE"

    scores = {name: 30 for name in SCORE_FIELDS}
    resp = await client.post(
        f"/kitchens/{world.kitchen_id}/hygiene-checks",
        json={"check_date": "2025-03-03", **scores},
        headers=headers,
    )
    assert resp.status_code == 201
    assert resp.json()["overall_score"] == 30
    assert resp.json()["status"] == "PASS"

    today = await client.get(f"/kitchens/{world.kitchen_id}/hygiene-checks/today", headers=headers)
    assert today.status_code == 200

    resp = await client.get(f"/menus/{world.menu_id}/can-serve", headers=headers)
    assert resp.json()["allowed"] is True

    report = await client.get(f"/kitchens/{world.kitchen_id}/hygiene-compliance", headers=headers)
    assert report.json()["total_checks"] == 1


async def test_unknown_kitchen_is_404(client, headers, world):
    resp = await client.get(f"/kitchens/{uuid.uuid4()}/can-serve", headers=headers)
    assert resp.status_code == 404
    assert resp.json()["code"] == "NOT_FOUND"


async def test_approval_endpoints(client, headers, world):
    # world's menu is already approved; submitting again is an illegal transition
    resp = await client.post(f"/menus/{world.menu_id}/submit", headers=headers)
    assert resp.status_code == 409
    assert resp.json()["code"] == "INVALID_TRANSITION"

    pending = await client.get("/menu-approvals/pending", headers=headers)
    assert pending.json() == []


async def test_attendance_blocked_is_403(client, headers, db, services, world):
    await record_hygiene(db, services, world)
    await add_allergy(db, world, "peanut")

    resp = await client.post(
        "/meal-attendance",
        json={"student_id": world.student_id, "meal_id": world.meal_id, "variant_id": world.variant["peanut"]},
        headers=headers,
    )

    assert resp.status_code == 403
    assert resp.json()["code"] == "ADMISSION_BLOCKED"
    assert resp.json()["data"]["blocked_by"] == "ALLERGEN"


async def test_admission_check_and_meal_choice(client, headers, db, services, world):
    await record_hygiene(db, services, world)
    body = {"student_id": world.student_id, "variant_id": world.variant["plain"]}

    check = await client.post("/admission/check", json=body, headers=headers)
    assert check.status_code == 200
    assert check.json()["status"] == "ADMITTED"

    choice = await client.post("/meal-choices", json=body, headers=headers)
    assert choice.status_code == 201
    assert choice.json()["allergy_verified"] is True


async def test_allergy_record_lifecycle(client, headers, world):
    created = await client.post(
        "/allergies",
        json={"student_id": world.student_id, "allergen_id": world.allergen["shellfish"], "severity": "SEVERE"},
        headers=headers,
    )
    assert created.status_code == 201
    record_id = created.json()["id"]
    assert created.json()["is_verified"] is False

    verified = await client.post(
        f"/allergies/{record_id}/verify",
        json={"doctor_name": "Dr. Rao", "doctor_contact": "+91-9000000000"},
        headers=headers,
    )
    assert verified.status_code == 200
    assert verified.json()["verified_by"] == "manager-1"

    rejected = await client.post(f"/allergies/{record_id}/reject", headers=headers)
    assert rejected.status_code == 409

    listed = await client.get(f"/allergies/students/{world.student_id}", headers=headers)
    assert [r["allergen"]["name"] for r in listed.json()] == ["Shellfish"]
