import pytest
from httpx import AsyncClient
from sqlalchemy import select

from policyflow.auth.models import Role, User
from policyflow.policies.models import VisibilityType


@pytest.mark.asyncio
async def test_super_admin_manages_departments(async_client: AsyncClient, make_user, auth_headers):
    admin = await make_user(role=Role.SUPER_ADMIN)

    response = await async_client.post(
        "/api/departments", json={"name": "Research", "description": "R&D"}, headers=auth_headers(admin)
    )
    assert response.status_code == 201
    department = response.json()
    assert department["name"] == "Research"

    response = await async_client.post("/api/departments", json={"name": "Research"}, headers=auth_headers(admin))
    assert response.status_code == 409

    response = await async_client.put(
        f"/api/departments/{department['id']}", json={"name": "", "description": "Labs"}, headers=auth_headers(admin)
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Research"
    assert response.json()["description"] == "Labs"

    response = await async_client.get("/api/departments", headers=auth_headers(admin))
    assert [d["name"] for d in response.json()] == ["Research"]


@pytest.mark.asyncio
async def test_departments_are_listed_by_name_for_everyone(
    async_client: AsyncClient, make_user, make_department, auth_headers
):
    await make_department("Warehouse")
    await make_department("Accounting")
    staff = await make_user()

    response = await async_client.get("/api/departments", headers=auth_headers(staff))
    assert response.status_code == 200
    assert [d["name"] for d in response.json()] == ["Accounting", "Warehouse"]


@pytest.mark.asyncio
async def test_only_super_admin_changes_departments(
    async_client: AsyncClient, make_user, make_department, auth_headers
):
    support = await make_department("Support")
    dept_admin = await make_user(role=Role.DEPT_ADMIN, department=support)

    response = await async_client.post("/api/departments", json={"name": "Shadow IT"}, headers=auth_headers(dept_admin))
    assert response.status_code == 403
    response = await async_client.put(
        f"/api/departments/{support.id}", json={"name": "Mine"}, headers=auth_headers(dept_admin)
    )
    assert response.status_code == 403
    response = await async_client.delete(f"/api/departments/{support.id}", headers=auth_headers(dept_admin))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_department_with_policies_cannot_be_deleted(
    async_client: AsyncClient, make_user, make_department, make_policy, auth_headers
):
    admin = await make_user(role=Role.SUPER_ADMIN)
    finance = await make_department("Finance")
    await make_policy(visibility_type=VisibilityType.DEPARTMENT, department=finance)

    response = await async_client.delete(f"/api/departments/{finance.id}", headers=auth_headers(admin))
    assert response.status_code == 409

    response = await async_client.get("/api/departments", headers=auth_headers(admin))
    assert [d["name"] for d in response.json()] == ["Finance"]


@pytest.mark.asyncio
async def test_deleting_department_detaches_members(
    async_client: AsyncClient, db_session, make_user, make_department, auth_headers
):
    admin = await make_user(role=Role.SUPER_ADMIN)
    temp = await make_department("Temp")
    member = await make_user(department=temp)

    response = await async_client.delete(f"/api/departments/{temp.id}", headers=auth_headers(admin))
    assert response.status_code == 204

    stored = (
        await db_session.execute(
            select(User).where(User.id == member.id).execution_options(populate_existing=True)
        )
    ).scalars().one()
    assert stored.department_id is None

    response = await async_client.delete(f"/api/departments/{temp.id}", headers=auth_headers(admin))
    assert response.status_code == 404
