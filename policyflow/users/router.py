from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from policyflow.database import get_db
from policyflow.access.context import CallerContext
from policyflow.auth.dependencies import get_caller
from policyflow.users.schemas import UserCreate, UserUpdate, UserResponse
from policyflow.users.service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[UserResponse])
async def list_users(
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    service = UserService(db)
    return await service.list_users(caller)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user: UserCreate,
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    service = UserService(db)
    return await service.create_user(caller, user)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: UUID,
    user: UserUpdate,
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    service = UserService(db)
    return await service.update_user(caller, user_id, user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: UUID,
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
):
    service = UserService(db)
    await service.delete_user(caller, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
