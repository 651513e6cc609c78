import logging
from typing import List
from uuid import UUID
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from policyflow.access.context import CallerContext
from policyflow.access.guard import DepartmentTarget, Operation, authorize
from policyflow.auth.models import User
from policyflow.core.errors import ConflictError, InvalidArgumentError, NotFoundError
from policyflow.database import serialized_write
from policyflow.departments.models import Department
from policyflow.departments.schemas import DepartmentCreate, DepartmentUpdate
from policyflow.policies.models import Policy

logger = logging.getLogger(__name__)


class DepartmentService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_departments(self) -> List[Department]:
        result = await self.db.execute(select(Department).order_by(Department.name))
        return list(result.scalars().all())

    async def get_department(self, department_id: UUID) -> Department:
        department = await self.db.get(Department, department_id)
        if not department:
            raise NotFoundError("department not found")
        return department

    async def create_department(self, caller: CallerContext, department_in: DepartmentCreate) -> Department:
        authorize(Operation.CREATE_DEPARTMENT, caller)
        name = department_in.name.strip()
        if not name:
            raise InvalidArgumentError("name is required")

        async with serialized_write(self.db):
            department = Department(name=name, description=department_in.description or "")
            self.db.add(department)
            try:
                await self.db.flush()
            except IntegrityError:
                raise ConflictError("department already exists")

        logger.info("Department %s (%s) created by %s", department.id, department.name, caller.user_id)
        return department

    async def update_department(self, caller: CallerContext, department_id: UUID, department_in: DepartmentUpdate) -> Department:
        authorize(Operation.UPDATE_DEPARTMENT, caller)
        async with serialized_write(self.db):
            department = await self.get_department(department_id)
            # Blank fields keep the stored values.
            if department_in.name and department_in.name.strip():
                department.name = department_in.name.strip()
            if department_in.description:
                department.description = department_in.description
            try:
                await self.db.flush()
            except IntegrityError:
                raise ConflictError("department already exists")
        return department

    async def delete_department(self, caller: CallerContext, department_id: UUID) -> None:
        async with serialized_write(self.db):
            department = await self.get_department(department_id)
            policy_count = (
                await self.db.execute(
                    select(func.count()).select_from(Policy).where(Policy.department_id == department_id)
                )
            ).scalar_one()
            authorize(
                Operation.DELETE_DEPARTMENT,
                caller,
                DepartmentTarget(id=department.id, policy_count=policy_count),
            )
            # Members stay, without a department.
            await self.db.execute(
                update(User).where(User.department_id == department_id).values(department_id=None)
            )
            await self.db.delete(department)

        logger.info("Department %s deleted by %s", department_id, caller.user_id)
