import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from policyflow.access.context import CallerContext
from policyflow.access.guard import Operation, authorize
from policyflow.auth.models import Role, User
from policyflow.core.errors import ConflictError, InvalidArgumentError, NotFoundError
from policyflow.database import serialized_write
from policyflow.departments.models import Department
from policyflow.policies.models import (
    Acknowledgement,
    Policy,
    PolicyStatus,
    PolicyVersion,
    VisibilityType,
)
from policyflow.policies.schemas import (
    AcknowledgementAuditEntry,
    AcknowledgementResponse,
    PolicyAckCount,
    PolicyDetail,
    PolicyListItem,
    PolicyResponse,
    StatsCounts,
    StatsResponse,
    VersionResponse,
)
from policyflow.policies.signature import compute_signature, verify_signature
from policyflow.policies.visibility import can_view, list_visible_policies
from policyflow.shared.models import utcnow

logger = logging.getLogger(__name__)


def _parse_visibility(value: Any) -> VisibilityType:
    try:
        return VisibilityType(value)
    except ValueError:
        raise InvalidArgumentError("invalid visibility_type")


def _parse_status(value: Any) -> PolicyStatus:
    try:
        return PolicyStatus(value)
    except ValueError:
        raise InvalidArgumentError("invalid status")


class PolicyService:
    """Policy lifecycle: creation, updates, versions and acknowledgements.

    Status may be moved between any two of the four values; there is no
    transition table. Every write runs under ``serialized_write`` so the
    version insert and the current-version repoint land in one commit.

    A failed write rolls the whole session back, which expires every object
    loaded through it, including ones this service returned earlier. Keep ids
    rather than instances across a call that may fail.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_policy(self, policy_id: UUID) -> Policy:
        result = await self.db.execute(
            select(Policy)
            .where(Policy.id == policy_id)
            .execution_options(populate_existing=True)
        )
        policy = result.scalars().first()
        if not policy:
            raise NotFoundError("policy not found")
        return policy

    async def _get_visible_policy(self, caller: CallerContext, policy_id: UUID) -> Policy:
        policy = await self._get_policy(policy_id)
        # Outside visibility looks the same as missing.
        if not can_view(caller, policy):
            raise NotFoundError("policy not found")
        return policy

    async def _require_department(self, department_id: UUID) -> None:
        if await self.db.get(Department, department_id) is None:
            raise InvalidArgumentError("unknown department")

    async def _get_version(self, version_id: UUID) -> Optional[PolicyVersion]:
        return await self.db.get(PolicyVersion, version_id)

    async def _has_acknowledged(self, user_id: UUID, version_id: UUID) -> bool:
        result = await self.db.execute(
            select(func.count())
            .select_from(Acknowledgement)
            .where(
                Acknowledgement.user_id == user_id,
                Acknowledgement.policy_version_id == version_id,
            )
        )
        return result.scalar_one() > 0

    async def _acknowledged_versions(self, user_id: UUID) -> set:
        result = await self.db.execute(
            select(Acknowledgement.policy_version_id).where(Acknowledgement.user_id == user_id)
        )
        return set(result.scalars().all())

    async def create_policy(
        self,
        caller: CallerContext,
        title: str,
        visibility_type: Any = VisibilityType.ORGANIZATION,
        department_id: Optional[UUID] = None,
    ) -> Policy:
        changes = authorize(
            Operation.CREATE_POLICY,
            caller,
            changes={"title": title, "visibility_type": visibility_type, "department_id": department_id},
        )
        title = (changes["title"] or "").strip()
        if not title:
            raise InvalidArgumentError("title is required")
        visibility = _parse_visibility(changes["visibility_type"])
        department_id = changes["department_id"]
        if visibility == VisibilityType.ORGANIZATION and department_id is not None:
            raise InvalidArgumentError("organization-wide policies cannot have a department")
        if visibility == VisibilityType.DEPARTMENT and department_id is None:
            raise InvalidArgumentError("department-scoped policies require department_id")

        async with serialized_write(self.db):
            if department_id is not None:
                await self._require_department(department_id)
            policy = Policy(
                title=title,
                status=PolicyStatus.DRAFT,
                visibility_type=visibility,
                department_id=department_id,
                current_version_id=None,
            )
            self.db.add(policy)
            await self.db.flush()
            policy_id = policy.id

        logger.info("Policy %s created by %s (%s)", policy_id, caller.user_id, visibility.value)
        return await self._get_policy(policy_id)

    async def update_policy(self, caller: CallerContext, policy_id: UUID, changes: Dict[str, Any]) -> Policy:
        """Apply a partial update. Absent or blank fields keep their stored values."""
        async with serialized_write(self.db):
            policy = await self._get_policy(policy_id)
            changes = authorize(Operation.UPDATE_POLICY, caller, policy, changes)

            title = (changes.get("title") or "").strip() or policy.title
            status = _parse_status(changes.get("status") or policy.status)
            visibility = _parse_visibility(changes.get("visibility_type") or policy.visibility_type)
            requested_department = changes.get("department_id")

            if visibility == VisibilityType.ORGANIZATION:
                if requested_department is not None:
                    raise InvalidArgumentError("organization-wide policies cannot have a department")
                department_id = None
            else:
                department_id = requested_department or policy.department_id
                if department_id is None:
                    raise InvalidArgumentError("department-scoped policies require department_id")
                if requested_department is not None:
                    await self._require_department(requested_department)

            policy.title = title
            policy.status = status
            policy.visibility_type = visibility
            policy.department_id = department_id

        logger.info("Policy %s updated by %s (status=%s)", policy_id, caller.user_id, status.value)
        return await self._get_policy(policy_id)

    async def create_version(
        self,
        caller: CallerContext,
        policy_id: UUID,
        content: str,
        version_string: str,
        changelog: str = "",
    ) -> PolicyVersion:
        async with serialized_write(self.db):
            policy = await self._get_policy(policy_id)
            authorize(Operation.CREATE_VERSION, caller, policy)
            if not (content or "").strip() or not (version_string or "").strip():
                raise InvalidArgumentError("content and version_string are required")

            version = PolicyVersion(
                policy_id=policy.id,
                content=content,
                version_string=version_string.strip(),
                changelog=changelog or "",
            )
            self.db.add(version)
            await self.db.flush()
            policy.current_version_id = version.id

        logger.info("Version %s (%s) is now current for policy %s", version.id, version.version_string, policy_id)
        return version

    async def acknowledge(self, caller: CallerContext, policy_id: UUID) -> Acknowledgement:
        async with serialized_write(self.db):
            policy = await self._get_visible_policy(caller, policy_id)
            if policy.status != PolicyStatus.PUBLISHED:
                raise InvalidArgumentError("can only acknowledge published policies")
            if policy.current_version_id is None:
                raise InvalidArgumentError("policy has no current version")
            version_id = policy.current_version_id
            if await self._has_acknowledged(caller.user_id, version_id):
                raise ConflictError("already acknowledged")

            timestamp = utcnow()
            ack = Acknowledgement(
                user_id=caller.user_id,
                policy_version_id=version_id,
                timestamp=timestamp,
                signature_hash=compute_signature(caller.user_id, version_id, timestamp),
            )
            self.db.add(ack)
            try:
                await self.db.flush()
            except IntegrityError:
                raise ConflictError("already acknowledged")

        logger.info("User %s acknowledged version %s of policy %s", caller.user_id, version_id, policy_id)
        return ack

    async def get_policy_detail(self, caller: CallerContext, policy_id: UUID) -> PolicyDetail:
        policy = await self._get_visible_policy(caller, policy_id)
        current_version = None
        acknowledged = False
        if policy.current_version_id is not None:
            current_version = await self._get_version(policy.current_version_id)
        if current_version is not None:
            acknowledged = await self._has_acknowledged(caller.user_id, current_version.id)
        return PolicyDetail(
            policy=PolicyResponse.model_validate(policy),
            current_version=VersionResponse.model_validate(current_version) if current_version else None,
            acknowledged=acknowledged,
        )

    async def list_policies(self, caller: CallerContext) -> List[PolicyListItem]:
        policies = await list_visible_policies(self.db, caller.role, caller.department_id)
        acknowledged = await self._acknowledged_versions(caller.user_id)
        return [
            PolicyListItem(
                **PolicyResponse.model_validate(p).model_dump(),
                acknowledged=p.current_version_id is not None and p.current_version_id in acknowledged,
            )
            for p in policies
        ]

    async def list_versions(self, caller: CallerContext, policy_id: UUID) -> List[PolicyVersion]:
        await self._get_visible_policy(caller, policy_id)
        result = await self.db.execute(
            select(PolicyVersion)
            .where(PolicyVersion.policy_id == policy_id)
            .order_by(desc(PolicyVersion.created_at))
        )
        return list(result.scalars().all())

    async def list_acknowledgements(self, caller: CallerContext, policy_id: UUID) -> List[AcknowledgementAuditEntry]:
        """Acknowledgements of the current version, each re-checked against its signature."""
        policy = await self._get_policy(policy_id)
        authorize(Operation.LIST_ACKNOWLEDGEMENTS, caller, policy)
        if policy.current_version_id is None:
            return []
        result = await self.db.execute(
            select(Acknowledgement)
            .where(Acknowledgement.policy_version_id == policy.current_version_id)
            .order_by(desc(Acknowledgement.timestamp))
        )
        entries = []
        for ack in result.scalars().all():
            valid = verify_signature(ack.user_id, ack.policy_version_id, ack.timestamp, ack.signature_hash)
            if not valid:
                logger.warning("Acknowledgement %s fails signature verification", ack.id)
            entries.append(
                AcknowledgementAuditEntry(
                    **AcknowledgementResponse.model_validate(ack).model_dump(),
                    signature_valid=valid,
                )
            )
        return entries

    async def get_stats(self, caller: CallerContext) -> StatsResponse:
        """Aggregate counts over the policies (and users) in the caller's scope."""
        authorize(Operation.VIEW_STATS, caller)
        policies = await list_visible_policies(self.db, caller.role, caller.department_id)

        user_query = select(func.count()).select_from(User)
        if caller.role == Role.SUPER_ADMIN:
            total_users = (await self.db.execute(user_query)).scalar_one()
        elif caller.department_id is None:
            total_users = 0
        else:
            user_query = user_query.where(User.department_id == caller.department_id)
            total_users = (await self.db.execute(user_query)).scalar_one()

        policy_ids = [p.id for p in policies]
        total_acks = (
            await self.db.execute(
                select(func.count())
                .select_from(Acknowledgement)
                .join(PolicyVersion, PolicyVersion.id == Acknowledgement.policy_version_id)
                .where(PolicyVersion.policy_id.in_(policy_ids))
            )
        ).scalar_one()

        published = [
            p for p in policies
            if p.status == PolicyStatus.PUBLISHED and p.current_version_id is not None
        ]
        per_version = dict(
            (
                await self.db.execute(
                    select(Acknowledgement.policy_version_id, func.count())
                    .where(Acknowledgement.policy_version_id.in_([p.current_version_id for p in published]))
                    .group_by(Acknowledgement.policy_version_id)
                )
            ).all()
        )

        def count_status(status: PolicyStatus) -> int:
            return sum(1 for p in policies if p.status == status)

        return StatsResponse(
            stats=StatsCounts(
                total_users=total_users,
                total_policies=len(policies),
                published_count=count_status(PolicyStatus.PUBLISHED),
                draft_count=count_status(PolicyStatus.DRAFT),
                review_count=count_status(PolicyStatus.REVIEW),
                archived_count=count_status(PolicyStatus.ARCHIVED),
                total_acknowledgements=total_acks,
            ),
            ack_counts=[
                PolicyAckCount(policy_id=p.id, title=p.title, ack_count=per_version.get(p.current_version_id, 0))
                for p in published
            ],
        )
