import logging
from typing import List
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from policyflow.access.context import CallerContext
from policyflow.access.guard import Operation, UserTarget, authorize
from policyflow.auth.models import Role, User
from policyflow.auth.service import deliver_login_link, magic_login_url
from policyflow.core.errors import ConflictError, InvalidArgumentError, NotFoundError
from policyflow.database import serialized_write
from policyflow.departments.models import Department
from policyflow.policies.models import Acknowledgement
from policyflow.users.schemas import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_user(self, user_id: UUID) -> User:
        result = await self.db.execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
        user = result.scalars().first()
        if not user:
            raise NotFoundError("user not found")
        return user

    async def _target(self, user: User) -> UserTarget:
        super_admins = (
            await self.db.execute(
                select(func.count()).select_from(User).where(User.role == Role.SUPER_ADMIN)
            )
        ).scalar_one()
        acknowledgements = (
            await self.db.execute(
                select(func.count()).select_from(Acknowledgement).where(Acknowledgement.user_id == user.id)
            )
        ).scalar_one()
        return UserTarget(
            id=user.id,
            role=Role(user.role),
            department_id=user.department_id,
            super_admin_count=super_admins,
            acknowledgement_count=acknowledgements,
        )

    async def _check_department(self, department_id) -> None:
        if department_id is not None and await self.db.get(Department, department_id) is None:
            raise InvalidArgumentError("unknown department")

    async def list_users(self, caller: CallerContext) -> List[User]:
        scope = authorize(Operation.LIST_USERS, caller)
        query = select(User).order_by(User.created_at)
        if "department_id" in scope:
            if scope["department_id"] is None:
                return []
            query = query.where(User.department_id == scope["department_id"])
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def create_user(self, caller: CallerContext, user_in: UserCreate) -> User:
        changes = authorize(Operation.CREATE_USER, caller, changes=user_in.model_dump())
        email = str(changes["email"]).strip()
        name = (changes["name"] or "").strip()
        if not email or not name:
            raise InvalidArgumentError("email and name are required")
        role = Role(changes["role"] or Role.STAFF)
        department_id = changes.get("department_id")
        if role == Role.DEPT_ADMIN and department_id is None:
            raise InvalidArgumentError("department admins require a department")

        async with serialized_write(self.db):
            await self._check_department(department_id)
            user = User(
                email=email,
                name=name,
                role=role,
                department_id=department_id,
                created_by=caller.user_id,
            )
            self.db.add(user)
            try:
                await self.db.flush()
            except IntegrityError:
                raise ConflictError("user already exists")
            user_id = user.id

        logger.info("User %s (%s) created by %s", user_id, role.value, caller.user_id)
        user = await self._get_user(user_id)
        deliver_login_link(user, magic_login_url(user.email))
        return user

    async def update_user(self, caller: CallerContext, user_id: UUID, user_in: UserUpdate) -> User:
        async with serialized_write(self.db):
            user = await self._get_user(user_id)
            changes = authorize(
                Operation.UPDATE_USER,
                caller,
                await self._target(user),
                user_in.model_dump(exclude_unset=True),
            )

            # Blank fields keep the stored values.
            if changes.get("name") and changes["name"].strip():
                user.name = changes["name"].strip()
            if changes.get("email"):
                user.email = str(changes["email"]).strip()
            if changes.get("role"):
                user.role = Role(changes["role"])
            if "department_id" in changes:
                await self._check_department(changes["department_id"])
                user.department_id = changes["department_id"]
            if user.role == Role.DEPT_ADMIN and user.department_id is None:
                raise InvalidArgumentError("department admins require a department")

            try:
                await self.db.flush()
            except IntegrityError:
                raise ConflictError("email already in use")

        logger.info("User %s updated by %s", user_id, caller.user_id)
        return await self._get_user(user_id)

    async def delete_user(self, caller: CallerContext, user_id: UUID) -> None:
        async with serialized_write(self.db):
            user = await self._get_user(user_id)
            authorize(Operation.DELETE_USER, caller, await self._target(user))

            await self.db.execute(
                update(User).where(User.created_by == user_id).values(created_by=None)
            )
            await self.db.delete(user)

        logger.info("User %s deleted by %s", user_id, caller.user_id)
