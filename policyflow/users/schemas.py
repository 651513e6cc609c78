from datetime import datetime
from uuid import UUID
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr

from policyflow.auth.models import Role

class UserCreate(BaseModel):
    email: EmailStr
    name: str
    role: Role = Role.STAFF
    department_id: Optional[UUID] = None

class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    role: Optional[Role] = None
    department_id: Optional[UUID] = None

class UserResponse(BaseModel):
    id: UUID
    email: str
    name: str
    role: Role
    department_id: Optional[UUID] = None
    department_name: Optional[str] = None
    created_by: Optional[UUID] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
