"""School tests — CRUD, code uniqueness, trainer-set reads and staffing figures."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.constants import StaffingStatus
from backend.common.exceptions import ConflictError, NotFoundException
from backend.schools.schemas import SchoolCreate
from backend.schools.service import SchoolService
from tests.conftest import seed_employee, seed_posting, seed_school

BASE = "/api/v1/schools"


class TestSchoolService:

    async def test_create_school(self, db: AsyncSession):
        school = await SchoolService.create_school(
            db,
            SchoolCreate(name="Sunrise Academy", code="SUN-01", city="Nashik", trainers_required=3),
        )
        assert school.id is not None
        assert school.trainers_required == 3

    async def test_duplicate_code_conflicts(self, db: AsyncSession):
        await seed_school(db, code="DUP-01")
        await db.commit()

        with pytest.raises(ConflictError):
            await SchoolService.create_school(
                db, SchoolCreate(name="Another", code="DUP-01"),
            )

    async def test_unknown_school(self, db: AsyncSession):
        with pytest.raises(NotFoundException):
            await SchoolService.get_school(db, uuid.uuid4())

    async def test_trainer_set_operations_are_idempotent(self, db: AsyncSession):
        school = await seed_school(db)
        emp = await seed_employee(db)

        assert await SchoolService.add_trainer(db, school.id, emp.id) is True
        assert await SchoolService.add_trainer(db, school.id, emp.id) is False
        assert await SchoolService.trainer_ids(db, school.id) == {emp.id}

        assert await SchoolService.remove_trainer(db, school.id, emp.id) is True
        assert await SchoolService.remove_trainer(db, school.id, emp.id) is False
        assert await SchoolService.trainer_ids(db, school.id) == set()

    async def test_staffing_figures(self, db: AsyncSession):
        school = await seed_school(db, trainers_required=2)
        emp = await seed_employee(db, full_name="Anita Desai")
        await seed_posting(db, emp, school)

        detail = await SchoolService.get_school(db, school.id)

        assert detail.current_count == 1
        assert detail.shortage == 1
        assert detail.staffing_status == StaffingStatus.shortage
        assert [t.full_name for t in detail.current_trainers] == ["Anita Desai"]


class TestSchoolAPI:

    async def test_create_school(self, client, auth_headers):
        resp = await client.post(
            BASE,
            json={"name": "Lotus School", "code": "LOT-01", "city": "Mumbai", "trainers_required": 2},
            headers=auth_headers,
        )

        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["code"] == "LOT-01"
        assert data["current_count"] == 0
        assert data["staffing_status"] == "critical"

    async def test_duplicate_code_is_409(self, client, auth_headers, school):
        resp = await client.post(
            BASE, json={"name": "Copycat", "code": school.code}, headers=auth_headers,
        )
        assert resp.status_code == 409
        assert resp.json()["type"].endswith("/conflict")

    async def test_zero_trainers_required_is_422(self, client, auth_headers):
        resp = await client.post(
            BASE,
            json={"name": "Tiny", "code": "TNY-01", "trainers_required": 0},
            headers=auth_headers,
        )
        assert resp.status_code == 422

    async def test_list_and_search(self, client, auth_headers, school, school_b):
        resp = await client.get(BASE, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["meta"]["total"] == 2

        resp = await client.get(BASE, params={"search": "beta"}, headers=auth_headers)
        names = [s["name"] for s in resp.json()["data"]]
        assert names == ["Beta International School"]

    async def test_update_school(self, client, auth_headers, school):
        resp = await client.put(
            f"{BASE}/{school.id}", json={"trainers_required": 5}, headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["trainers_required"] == 5
        assert resp.json()["data"]["shortage"] == 5

    async def test_trainers_endpoint(self, client, db, auth_headers, school, employee):
        await seed_posting(db, employee, school)
        await db.commit()

        resp = await client.get(f"{BASE}/{school.id}/trainers", headers=auth_headers)

        assert resp.status_code == 200
        assert [t["id"] for t in resp.json()["data"]] == [str(employee.id)]

    async def test_trainers_of_unknown_school(self, client, auth_headers):
        resp = await client.get(f"{BASE}/{uuid.uuid4()}/trainers", headers=auth_headers)
        assert resp.status_code == 404

    async def test_accounts_cannot_create(self, client, accounts_headers):
        resp = await client.post(
            BASE, json={"name": "Nope", "code": "NOPE"}, headers=accounts_headers,
        )
        assert resp.status_code == 403
