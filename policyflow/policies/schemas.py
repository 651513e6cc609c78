from datetime import datetime
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict

from policyflow.policies.models import PolicyStatus, VisibilityType


class PolicyCreate(BaseModel):
    title: str
    visibility_type: VisibilityType = VisibilityType.ORGANIZATION
    department_id: Optional[UUID] = None

class PolicyUpdate(BaseModel):
    title: Optional[str] = None
    status: Optional[PolicyStatus] = None
    visibility_type: Optional[VisibilityType] = None
    department_id: Optional[UUID] = None

class PolicyResponse(BaseModel):
    id: UUID
    title: str
    status: PolicyStatus
    visibility_type: VisibilityType
    department_id: Optional[UUID] = None
    department_name: Optional[str] = None
    current_version_id: Optional[UUID] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class PolicyListItem(PolicyResponse):
    acknowledged: bool = False


class VersionCreate(BaseModel):
    content: str
    version_string: str
    changelog: str = ""

class VersionResponse(BaseModel):
    id: UUID
    policy_id: UUID
    content: str
    version_string: str
    changelog: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PolicyDetail(BaseModel):
    policy: PolicyResponse
    current_version: Optional[VersionResponse] = None
    acknowledged: bool = False


class AcknowledgementResponse(BaseModel):
    id: UUID
    user_id: UUID
    policy_version_id: UUID
    timestamp: datetime
    signature_hash: str

    model_config = ConfigDict(from_attributes=True)

class AcknowledgementAuditEntry(AcknowledgementResponse):
    signature_valid: bool


class StatsCounts(BaseModel):
    total_users: int
    total_policies: int
    published_count: int
    draft_count: int
    review_count: int
    archived_count: int
    total_acknowledgements: int

class PolicyAckCount(BaseModel):
    policy_id: UUID
    title: str
    ack_count: int

class StatsResponse(BaseModel):
    stats: StatsCounts
    ack_counts: List[PolicyAckCount]
