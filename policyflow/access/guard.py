"""Authorization rules for every mutating (and admin-only) operation.

Rules live in a single (operation, role) table so the whole matrix can be read
in one place. A rule receives the caller, the resource being acted on and the
caller-supplied change-set, and either raises or returns the change-set that
may actually be applied. Escalation attempts on scope fields are clamped in
the returned change-set and the request goes ahead; acting on a resource
outside the caller's scope is rejected.

A pair missing from the table is forbidden.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple
from uuid import UUID

from policyflow.access.context import CallerContext
from policyflow.auth.models import Role
from policyflow.core.errors import ConflictError, ForbiddenError
from policyflow.policies.models import VisibilityType

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    CREATE_POLICY = "create_policy"
    UPDATE_POLICY = "update_policy"
    CREATE_VERSION = "create_version"
    LIST_ACKNOWLEDGEMENTS = "list_acknowledgements"
    VIEW_STATS = "view_stats"
    LIST_USERS = "list_users"
    CREATE_USER = "create_user"
    UPDATE_USER = "update_user"
    DELETE_USER = "delete_user"
    CREATE_DEPARTMENT = "create_department"
    UPDATE_DEPARTMENT = "update_department"
    DELETE_DEPARTMENT = "delete_department"


@dataclass(frozen=True)
class UserTarget:
    id: UUID
    role: Role
    department_id: Optional[UUID]
    super_admin_count: int
    acknowledgement_count: int = 0


@dataclass(frozen=True)
class DepartmentTarget:
    id: UUID
    policy_count: int


Changes = Dict[str, Any]
Rule = Callable[[CallerContext, Any, Changes], Changes]


def _own_department(caller: CallerContext) -> UUID:
    if caller.department_id is None:
        raise ForbiddenError("department admin must belong to a department")
    return caller.department_id


def _allow(caller: CallerContext, target: Any, changes: Changes) -> Changes:
    return changes


def _clamp_policy_scope(caller: CallerContext, changes: Changes) -> Changes:
    department_id = _own_department(caller)
    requested_visibility = changes.get("visibility_type")
    requested_department = changes.get("department_id")
    if requested_visibility not in (None, VisibilityType.DEPARTMENT) or requested_department not in (None, department_id):
        logger.warning(
            "Clamped policy scope for department admin %s (requested visibility=%s department=%s)",
            caller.user_id, requested_visibility, requested_department,
        )
    return {
        **changes,
        "visibility_type": VisibilityType.DEPARTMENT,
        "department_id": department_id,
    }


def _require_own_department_policy(caller: CallerContext, policy: Any) -> None:
    department_id = _own_department(caller)
    if policy.visibility_type != VisibilityType.DEPARTMENT or policy.department_id != department_id:
        raise ForbiddenError("policy belongs to another scope")


def _dept_admin_create_policy(caller, target, changes):
    return _clamp_policy_scope(caller, changes)


def _dept_admin_update_policy(caller, policy, changes):
    if policy.department_id is None or policy.department_id != _own_department(caller):
        raise ForbiddenError("policy belongs to another department")
    return _clamp_policy_scope(caller, changes)


def _dept_admin_policy_admin(caller, policy, changes):
    _require_own_department_policy(caller, policy)
    return changes


def _dept_admin_list_users(caller, target, changes):
    # No department means nobody is in scope.
    return {**changes, "department_id": caller.department_id}


def _dept_admin_create_user(caller, target, changes):
    department_id = _own_department(caller)
    if changes.get("role") == Role.SUPER_ADMIN:
        raise ForbiddenError("cannot create super admin")
    return {**changes, "department_id": department_id}


def _dept_admin_update_user(caller, user: UserTarget, changes):
    department_id = _own_department(caller)
    if user.department_id != department_id:
        raise ForbiddenError("user belongs to another department")
    if user.role == Role.SUPER_ADMIN:
        raise ForbiddenError("cannot modify a super admin")
    if changes.get("role") == Role.SUPER_ADMIN:
        raise ForbiddenError("cannot promote to super admin")
    if "department_id" in changes:
        changes = {**changes, "department_id": department_id}
    return changes


def _super_admin_update_user(caller, user: UserTarget, changes):
    new_role = changes.get("role")
    demoting = user.role == Role.SUPER_ADMIN and new_role is not None and new_role != Role.SUPER_ADMIN
    if demoting and user.super_admin_count <= 1:
        raise ConflictError("cannot downgrade the last super admin")
    return changes


def _super_admin_delete_user(caller, user: UserTarget, changes):
    if user.id == caller.user_id:
        raise ConflictError("cannot delete yourself")
    if user.role == Role.SUPER_ADMIN and user.super_admin_count <= 1:
        raise ConflictError("cannot delete the last super admin")
    # Acknowledgement rows are never deleted.
    if user.acknowledgement_count > 0:
        raise ConflictError("user has acknowledgements")
    return changes


def _super_admin_delete_department(caller, department: DepartmentTarget, changes):
    if department.policy_count > 0:
        raise ConflictError("department has assigned policies; reassign them first")
    return changes


RULES: Dict[Tuple[Operation, Role], Rule] = {
    (Operation.CREATE_POLICY, Role.SUPER_ADMIN): _allow,
    (Operation.CREATE_POLICY, Role.DEPT_ADMIN): _dept_admin_create_policy,
    (Operation.UPDATE_POLICY, Role.SUPER_ADMIN): _allow,
    (Operation.UPDATE_POLICY, Role.DEPT_ADMIN): _dept_admin_update_policy,
    (Operation.CREATE_VERSION, Role.SUPER_ADMIN): _allow,
    (Operation.CREATE_VERSION, Role.DEPT_ADMIN): _dept_admin_policy_admin,
    (Operation.LIST_ACKNOWLEDGEMENTS, Role.SUPER_ADMIN): _allow,
    (Operation.LIST_ACKNOWLEDGEMENTS, Role.DEPT_ADMIN): _dept_admin_policy_admin,
    (Operation.VIEW_STATS, Role.SUPER_ADMIN): _allow,
    (Operation.VIEW_STATS, Role.DEPT_ADMIN): _allow,
    (Operation.LIST_USERS, Role.SUPER_ADMIN): _allow,
    (Operation.LIST_USERS, Role.DEPT_ADMIN): _dept_admin_list_users,
    (Operation.CREATE_USER, Role.SUPER_ADMIN): _allow,
    (Operation.CREATE_USER, Role.DEPT_ADMIN): _dept_admin_create_user,
    (Operation.UPDATE_USER, Role.SUPER_ADMIN): _super_admin_update_user,
    (Operation.UPDATE_USER, Role.DEPT_ADMIN): _dept_admin_update_user,
    (Operation.DELETE_USER, Role.SUPER_ADMIN): _super_admin_delete_user,
    (Operation.CREATE_DEPARTMENT, Role.SUPER_ADMIN): _allow,
    (Operation.UPDATE_DEPARTMENT, Role.SUPER_ADMIN): _allow,
    (Operation.DELETE_DEPARTMENT, Role.SUPER_ADMIN): _super_admin_delete_department,
}


def authorize(
    operation: Operation,
    caller: CallerContext,
    target: Any = None,
    changes: Optional[Changes] = None,
) -> Changes:
    """Check ``caller`` may perform ``operation`` on ``target``.

    Returns the change-set to apply, which may differ from ``changes`` when
    the caller asked for more than their role allows.
    """
    rule = RULES.get((operation, caller.role))
    if rule is None:
        raise ForbiddenError(f"{caller.role.value} may not {operation.value.replace('_', ' ')}")
    return rule(caller, target, dict(changes or {}))
