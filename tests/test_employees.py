"""Employee module test suite — CRUD, search, uniqueness, exit-date
validation, the active dropdown and current-school enrichment.
"""

from __future__ import annotations

import uuid
from datetime import date

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.constants import EmploymentStatus
from backend.common.exceptions import ConflictError, NotFoundException, ValidationException
from backend.employees.schemas import EmployeeCreate, EmployeeUpdate
from backend.employees.service import EmployeeService
from tests.conftest import seed_employee, seed_posting, seed_school

BASE = "/api/v1/employees"


def _create_body(**overrides) -> dict:
    body = {
        "employee_code": "TR-9001",
        "full_name": "Meera Nair",
        "email": "meera.nair@staffing.example.org",
        "designation": "STEM Trainer",
        "date_of_joining": "2025-06-01",
    }
    body.update(overrides)
    return body


# ═════════════════════════════════════════════════════════════════════
# Service layer
# ═════════════════════════════════════════════════════════════════════


class TestEmployeeService:

    async def test_create_employee(self, db: AsyncSession):
        emp = await EmployeeService.create_employee(
            db,
            EmployeeCreate(
                employee_code="TR-1",
                full_name="Karan Shah",
                email="karan@staffing.example.org",
                date_of_joining=date(2025, 1, 1),
            ),
        )
        assert emp.is_active is True
        assert emp.employment_status == EmploymentStatus.active

    async def test_duplicate_code_conflicts(self, db: AsyncSession):
        existing = await seed_employee(db)
        await db.commit()

        with pytest.raises(ConflictError) as exc_info:
            await EmployeeService.create_employee(
                db,
                EmployeeCreate(
                    employee_code=existing.employee_code,
                    full_name="Someone Else",
                    email="else@staffing.example.org",
                    date_of_joining=date(2025, 1, 1),
                ),
            )
        assert exc_info.value.status_code == 409

    async def test_exit_before_joining_rejected(self, db: AsyncSession):
        emp = await seed_employee(db, date_of_joining=date(2025, 6, 1))

        with pytest.raises(ValidationException) as exc_info:
            await EmployeeService.update_employee(
                db, emp.id, EmployeeUpdate(date_of_exit=date(2025, 1, 1)),
            )
        assert "date_of_exit" in exc_info.value.errors

    async def test_status_change_updates_is_active(self, db: AsyncSession):
        emp = await seed_employee(db)

        updated = await EmployeeService.update_employee(
            db, emp.id, EmployeeUpdate(employment_status=EmploymentStatus.inactive),
        )

        assert updated.is_active is False

    async def test_list_active_excludes_inactive(self, db: AsyncSession):
        keep = await seed_employee(db, full_name="Active One")
        gone = await seed_employee(db, full_name="Former One")
        await EmployeeService.update_employee(
            db, gone.id, EmployeeUpdate(employment_status=EmploymentStatus.inactive),
        )

        active = await EmployeeService.list_active(db)

        assert [e.id for e in active] == [keep.id]

    async def test_unknown_employee(self, db: AsyncSession):
        with pytest.raises(NotFoundException):
            await EmployeeService.get_employee(db, uuid.uuid4())

    async def test_current_schools_follow_trainer_sets(self, db: AsyncSession):
        school = await seed_school(db, name="Cedar School")
        emp = await seed_employee(db)
        await seed_posting(db, emp, school)

        detail = await EmployeeService.get_employee(db, emp.id)

        assert [s.name for s in detail.current_schools] == ["Cedar School"]


# ═════════════════════════════════════════════════════════════════════
# HTTP API
# ═════════════════════════════════════════════════════════════════════


class TestEmployeeAPI:

    async def test_create_employee(self, client, auth_headers):
        resp = await client.post(BASE, json=_create_body(), headers=auth_headers)

        assert resp.status_code == 201
        body = resp.json()
        assert body["message"] == "Employee created successfully."
        assert body["data"]["employee_code"] == "TR-9001"
        assert body["data"]["current_schools"] == []

    async def test_invalid_email_is_422(self, client, auth_headers):
        resp = await client.post(
            BASE, json=_create_body(email="not-an-email"), headers=auth_headers,
        )
        assert resp.status_code == 422
        assert "email" in str(resp.json()["errors"])

    async def test_duplicate_email_is_409(self, client, auth_headers, employee):
        resp = await client.post(
            BASE, json=_create_body(email=employee.email), headers=auth_headers,
        )
        assert resp.status_code == 409

    async def test_list_search(self, client, db, auth_headers):
        await seed_employee(db, full_name="Priya Sharma")
        await seed_employee(db, full_name="Arjun Mehta")
        await db.commit()

        resp = await client.get(BASE, params={"search": "priya"}, headers=auth_headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["meta"]["total"] == 1
        assert body["data"][0]["full_name"] == "Priya Sharma"

    async def test_list_pagination(self, client, db, auth_headers):
        for i in range(3):
            await seed_employee(db, full_name=f"Trainer {i}")
        await db.commit()

        resp = await client.get(BASE, params={"page_size": 2}, headers=auth_headers)

        meta = resp.json()["meta"]
        assert meta["total"] == 3
        assert meta["total_pages"] == 2
        assert meta["has_next"] is True
        assert len(resp.json()["data"]) == 2

    async def test_active_dropdown(self, client, auth_headers, employee):
        resp = await client.get(f"{BASE}/active", headers=auth_headers)

        assert resp.status_code == 200
        assert [e["id"] for e in resp.json()["data"]] == [str(employee.id)]

    async def test_update_exit_date_before_joining_is_422(self, client, auth_headers, employee):
        resp = await client.put(
            f"{BASE}/{employee.id}",
            json={"date_of_exit": "2020-01-01"},
            headers=auth_headers,
        )
        assert resp.status_code == 422

    async def test_get_employee(self, client, auth_headers, employee):
        resp = await client.get(f"{BASE}/{employee.id}", headers=auth_headers)

        assert resp.status_code == 200
        assert resp.json()["data"]["full_name"] == "Ravi Kumar"

    async def test_requires_authentication(self, client):
        resp = await client.get(BASE)
        assert resp.status_code == 401
