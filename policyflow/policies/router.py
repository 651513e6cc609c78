from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from policyflow.access.context import CallerContext
from policyflow.auth.dependencies import get_caller
from policyflow.database import get_db
from policyflow.policies.schemas import (
    AcknowledgementAuditEntry,
    AcknowledgementResponse,
    PolicyCreate,
    PolicyDetail,
    PolicyListItem,
    PolicyResponse,
    PolicyUpdate,
    StatsResponse,
    VersionCreate,
    VersionResponse,
)
from policyflow.policies.service import PolicyService

router = APIRouter(prefix="/policies", tags=["policies"])
admin_router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("", response_model=List[PolicyListItem])
async def list_policies(
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    service = PolicyService(db)
    return await service.list_policies(caller)


@router.post("", response_model=PolicyResponse, status_code=status.HTTP_201_CREATED)
async def create_policy(
    policy: PolicyCreate,
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    service = PolicyService(db)
    return await service.create_policy(caller, policy.title, policy.visibility_type, policy.department_id)


@router.get("/{policy_id}", response_model=PolicyDetail)
async def get_policy(
    policy_id: UUID,
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    service = PolicyService(db)
    return await service.get_policy_detail(caller, policy_id)


@router.put("/{policy_id}", response_model=PolicyResponse)
async def update_policy(
    policy_id: UUID,
    policy: PolicyUpdate,
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    service = PolicyService(db)
    return await service.update_policy(caller, policy_id, policy.model_dump(exclude_unset=True))


@router.get("/{policy_id}/versions", response_model=List[VersionResponse])
async def list_versions(
    policy_id: UUID,
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    service = PolicyService(db)
    return await service.list_versions(caller, policy_id)


@router.post("/{policy_id}/versions", response_model=VersionResponse, status_code=status.HTTP_201_CREATED)
async def create_version(
    policy_id: UUID,
    version: VersionCreate,
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    service = PolicyService(db)
    return await service.create_version(
        caller, policy_id, version.content, version.version_string, version.changelog
    )


@router.post("/{policy_id}/acknowledge", response_model=AcknowledgementResponse, status_code=status.HTTP_201_CREATED)
async def acknowledge_policy(
    policy_id: UUID,
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    service = PolicyService(db)
    return await service.acknowledge(caller, policy_id)


@router.get("/{policy_id}/acknowledgements", response_model=List[AcknowledgementAuditEntry])
async def list_acknowledgements(
    policy_id: UUID,
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    service = PolicyService(db)
    return await service.list_acknowledgements(caller, policy_id)


@admin_router.get("/stats", response_model=StatsResponse)
async def admin_stats(
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    service = PolicyService(db)
    return await service.get_stats(caller)
