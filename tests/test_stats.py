import pytest
from httpx import AsyncClient

from policyflow.auth.models import Role
from policyflow.policies.models import PolicyStatus, VisibilityType
from policyflow.policies.service import PolicyService


@pytest.mark.asyncio
async def test_stats_for_super_admin(
    async_client: AsyncClient, db_session, make_user, make_department, make_policy, auth_headers, caller_for
):
    audit = await make_department("Audit")
    admin = await make_user(role=Role.SUPER_ADMIN)
    alice = await make_user(department=audit)
    bob = await make_user()
    handbook = await make_policy(title="Handbook")
    await make_policy(title="Audit Manual", visibility_type=VisibilityType.DEPARTMENT, department=audit)
    await make_policy(title="Draft Idea", status=PolicyStatus.DRAFT, content=None)
    await make_policy(title="Old Rules", status=PolicyStatus.ARCHIVED)

    service = PolicyService(db_session)
    await service.acknowledge(caller_for(alice), handbook.id)
    await service.acknowledge(caller_for(bob), handbook.id)

    response = await async_client.get("/api/admin/stats", headers=auth_headers(admin))
    assert response.status_code == 200
    body = response.json()
    assert body["stats"] == {
        "total_users": 3,
        "total_policies": 4,
        "published_count": 2,
        "draft_count": 1,
        "review_count": 0,
        "archived_count": 1,
        "total_acknowledgements": 2,
    }
    counts = {c["title"]: c["ack_count"] for c in body["ack_counts"]}
    assert counts == {"Handbook": 2, "Audit Manual": 0}


@pytest.mark.asyncio
async def test_stats_for_dept_admin_are_scoped(
    async_client: AsyncClient, make_user, make_department, make_policy, auth_headers
):
    audit = await make_department("Audit")
    sales = await make_department("Sales")
    dept_admin = await make_user(role=Role.DEPT_ADMIN, department=audit)
    await make_user(department=audit)
    await make_user(department=sales)
    await make_policy(title="Handbook")
    await make_policy(title="Audit Manual", visibility_type=VisibilityType.DEPARTMENT, department=audit)
    await make_policy(title="Sales Playbook", visibility_type=VisibilityType.DEPARTMENT, department=sales)

    response = await async_client.get("/api/admin/stats", headers=auth_headers(dept_admin))
    assert response.status_code == 200
    body = response.json()
    assert body["stats"]["total_users"] == 2
    assert body["stats"]["total_policies"] == 2
    assert {c["title"] for c in body["ack_counts"]} == {"Handbook", "Audit Manual"}
