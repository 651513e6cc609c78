from datetime import timedelta

import pytest
import pytest_asyncio

from policyflow.access.context import CallerContext
from policyflow.auth.models import Role
from policyflow.policies.models import PolicyStatus, VisibilityType
from policyflow.policies.visibility import can_view, list_visible_policies
from policyflow.shared.models import utcnow


@pytest_asyncio.fixture
async def scenario(db_session, make_department, make_policy):
    sales = await make_department("Sales")
    finance = await make_department("Finance")
    org = await make_policy(title="Org-wide")
    sales_policy = await make_policy(
        title="Sales only", visibility_type=VisibilityType.DEPARTMENT, department=sales
    )
    finance_policy = await make_policy(
        title="Finance only", visibility_type=VisibilityType.DEPARTMENT, department=finance,
        status=PolicyStatus.DRAFT,
    )
    # Distinct creation times so ordering is deterministic
    now = utcnow()
    org.created_at = now - timedelta(minutes=3)
    sales_policy.created_at = now - timedelta(minutes=2)
    finance_policy.created_at = now - timedelta(minutes=1)
    await db_session.commit()
    return sales, finance, org, sales_policy, finance_policy


@pytest.mark.asyncio
async def test_super_admin_sees_everything_newest_first(db_session, scenario):
    _, _, org, sales_policy, finance_policy = scenario
    policies = await list_visible_policies(db_session, Role.SUPER_ADMIN, None)
    assert [p.id for p in policies] == [finance_policy.id, sales_policy.id, org.id]


@pytest.mark.asyncio
@pytest.mark.parametrize("role", [Role.STAFF, Role.DEPT_ADMIN])
async def test_department_members_see_org_and_own_department(db_session, scenario, role):
    sales, _, org, sales_policy, _ = scenario
    policies = await list_visible_policies(db_session, role, sales.id)
    assert [p.id for p in policies] == [sales_policy.id, org.id]


@pytest.mark.asyncio
async def test_no_department_sees_only_org_policies(db_session, scenario):
    _, _, org, _, _ = scenario
    policies = await list_visible_policies(db_session, Role.STAFF, None)
    assert [p.id for p in policies] == [org.id]


@pytest.mark.asyncio
async def test_can_view_matches_listing(db_session, scenario, make_user):
    sales, finance, org, sales_policy, finance_policy = scenario
    seller = await make_user(department=sales)
    caller = CallerContext.for_user(seller)
    assert can_view(caller, org)
    assert can_view(caller, sales_policy)
    assert not can_view(caller, finance_policy)

    drifter = CallerContext.for_user(await make_user())
    assert can_view(drifter, org)
    assert not can_view(drifter, sales_policy)

    admin = CallerContext.for_user(await make_user(role=Role.SUPER_ADMIN))
    assert can_view(admin, finance_policy)
