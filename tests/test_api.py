"""HTTP layer: envelopes, status codes and caller identity."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from erp.db.table_store import TableStore


APPLICATION = {
    "first_name": "Anu",
    "last_name": "Menon",
    "email": "a@x.com",
    "phone": "9876543210",
    "programme_applied": "CS",
}


@pytest.mark.asyncio
async def test_create_admission_envelope(client: AsyncClient) -> None:
    response = await client.post("/api/v1/admissions", json=APPLICATION)
    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    assert data["admission"]["status"] == "pending"
    assert data["admission"]["applicant_name"] == "Anu Menon"


@pytest.mark.asyncio
async def test_admission_to_student_over_http(client: AsyncClient) -> None:
    created = (await client.post("/api/v1/admissions", json=APPLICATION)).json()["admission"]
    admission_id = created["admission_id"]

    response = await client.put(f"/api/v1/admissions/{admission_id}/status", json={"status": "approved"})
    assert response.status_code == 200

    response = await client.post(f"/api/v1/admissions/{admission_id}/admit", json={"programme_id": "CS1"})
    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    assert data["admission"]["status"] == "admitted"
    assert data["admission"]["student_id"] == data["student"]["student_id"]

    response = await client.get(f"/api/v1/students/{data['student']['student_id']}")
    assert response.json()["student"]["year_of_study"] == 1


@pytest.mark.asyncio
async def test_not_found_envelope(client: AsyncClient) -> None:
    response = await client.get("/api/v1/admissions/ADM-MISSING")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Admission not found"}


@pytest.mark.asyncio
async def test_conflict_envelope(client: AsyncClient) -> None:
    await client.post("/api/v1/admissions", json=APPLICATION)
    response = await client.post("/api/v1/admissions", json=APPLICATION)
    assert response.status_code == 409
    assert response.json()["success"] is False
    assert "already exists" in response.json()["error"]


@pytest.mark.asyncio
async def test_request_validation_is_400(client: AsyncClient) -> None:
    response = await client.post("/api/v1/admissions", json={"first_name": "Anu"})
    assert response.status_code == 400
    data = response.json()
    assert data["success"] is False
    assert "email" in data["error"]

    response = await client.post("/api/v1/admissions", json={**APPLICATION, "status": "admitted"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_invalid_status_is_400(client: AsyncClient) -> None:
    admission_id = (await client.post("/api/v1/admissions", json=APPLICATION)).json()["admission"]["admission_id"]
    response = await client.put(f"/api/v1/admissions/{admission_id}/status", json={"status": "waitlisted"})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid status"}


@pytest.mark.asyncio
async def test_actor_header_is_audited(client: AsyncClient, db_session: AsyncSession) -> None:
    response = await client.post(
        "/api/v1/students",
        json={"student_id": "S7", "first_name": "A", "last_name": "B", "email": "s7@example.com"},
        headers={"X-User-Id": "registrar-1"},
    )
    assert response.status_code == 201

    response = await client.get("/api/v1/audit/logs", params={"entity_id": "S7"})
    logs = response.json()["logs"]
    assert len(logs) == 1
    assert logs[0]["user_id"] == "registrar-1"
    assert logs[0]["action"] == "create"


@pytest.mark.asyncio
async def test_hostel_flow_over_http(client: AsyncClient, student, rooms) -> None:
    response = await client.post("/api/v1/hostel/allocations", json={"student_id": "S1", "room_id": "R1"})
    assert response.status_code == 201
    assert response.json()["room"]["status"] == "occupied"

    response = await client.post("/api/v1/hostel/allocations", json={"student_id": "S1", "room_id": "R2"})
    assert response.status_code == 409

    response = await client.post("/api/v1/hostel/students/S1/deallocate", json={"reason": "Graduated"})
    assert response.status_code == 200
    assert response.json()["allocation"]["reason"] == "Graduated"

    response = await client.get("/api/v1/hostel/students/S1/allocation")
    assert response.json() == {"success": True, "allocation": None}


@pytest.mark.asyncio
async def test_marks_and_delete_guard_over_http(client: AsyncClient, student, db_session: AsyncSession) -> None:
    await client.post("/api/v1/exams", json={"exam_id": "E1", "course_id": "C1", "exam_date": "2024-03-01"})
    response = await client.put("/api/v1/exams/E1/marks/S1", json={"marks_obtained": 92})
    assert response.status_code == 200
    assert response.json()["marks"]["grade"] == "A+"

    response = await client.delete("/api/v1/exams/E1")
    assert response.status_code == 409
    assert await TableStore(db_session).count("exams") == 1


@pytest.mark.asyncio
async def test_workbook_export_download(client: AsyncClient) -> None:
    response = await client.get("/api/v1/data/export")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert response.content[:2] == b"PK"


@pytest.mark.asyncio
async def test_database_stats_envelope(client: AsyncClient, student) -> None:
    response = await client.get("/api/v1/data/stats")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["stats"]["sheets"]["Students"] == 1
    assert body["stats"]["total_records"] >= 1
