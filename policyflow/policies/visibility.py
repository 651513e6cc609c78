from typing import List, Optional
from uuid import UUID

from sqlalchemy import Select, desc, or_, and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from policyflow.access.context import CallerContext
from policyflow.auth.models import Role
from policyflow.policies.models import Policy, VisibilityType


def visible_policies_query(role: Role, department_id: Optional[UUID]) -> Select:
    """Policies visible to ``role``/``department_id``, newest first."""
    query = select(Policy)
    if role == Role.SUPER_ADMIN:
        pass
    elif department_id is not None:
        query = query.where(
            or_(
                Policy.visibility_type == VisibilityType.ORGANIZATION,
                and_(
                    Policy.visibility_type == VisibilityType.DEPARTMENT,
                    Policy.department_id == department_id,
                ),
            )
        )
    else:
        query = query.where(Policy.visibility_type == VisibilityType.ORGANIZATION)
    return query.order_by(desc(Policy.created_at))


async def list_visible_policies(db: AsyncSession, role: Role, department_id: Optional[UUID]) -> List[Policy]:
    result = await db.execute(visible_policies_query(role, department_id))
    return list(result.scalars().unique().all())


def can_view(caller: CallerContext, policy: Policy) -> bool:
    if caller.role == Role.SUPER_ADMIN:
        return True
    if policy.visibility_type == VisibilityType.ORGANIZATION:
        return True
    return caller.department_id is not None and policy.department_id == caller.department_id
