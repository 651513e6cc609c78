from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from policyflow.database import get_db
from policyflow.access.context import CallerContext
from policyflow.auth.dependencies import get_caller
from policyflow.departments.schemas import DepartmentCreate, DepartmentUpdate, DepartmentResponse
from policyflow.departments.service import DepartmentService

router = APIRouter(prefix="/departments", tags=["departments"])


@router.get("", response_model=List[DepartmentResponse])
async def list_departments(
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    service = DepartmentService(db)
    return await service.list_departments()


@router.post("", response_model=DepartmentResponse, status_code=status.HTTP_201_CREATED)
async def create_department(
    department: DepartmentCreate,
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    service = DepartmentService(db)
    return await service.create_department(caller, department)


@router.put("/{department_id}", response_model=DepartmentResponse)
async def update_department(
    department_id: UUID,
    department: DepartmentUpdate,
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    service = DepartmentService(db)
    return await service.update_department(caller, department_id, department)


@router.delete("/{department_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_department(
    department_id: UUID,
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    service = DepartmentService(db)
    await service.delete_department(caller, department_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
