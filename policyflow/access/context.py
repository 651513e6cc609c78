from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from policyflow.auth.models import Role


@dataclass(frozen=True)
class CallerContext:
    """Who is making the request, resolved once per request from the session token."""

    user_id: UUID
    role: Role
    department_id: Optional[UUID] = None

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN

    @classmethod
    def for_user(cls, user) -> "CallerContext":
        return cls(user_id=user.id, role=Role(user.role), department_id=user.department_id)
