from enum import Enum
from sqlalchemy import Column, String, Text, ForeignKey, DateTime, Uuid, UniqueConstraint, Enum as SAEnum
from sqlalchemy.orm import relationship
from policyflow.database import Base
from policyflow.shared.models import AuditMixin, UUIDMixin, CreatedAtMixin
from policyflow.auth.models import enum_values
from policyflow.departments.models import Department


class PolicyStatus(str, Enum):
    DRAFT = "Draft"
    REVIEW = "Review"
    PUBLISHED = "Published"
    ARCHIVED = "Archived"


class VisibilityType(str, Enum):
    ORGANIZATION = "organization"
    DEPARTMENT = "department"


class Policy(Base, AuditMixin):
    __tablename__ = "policies"

    title = Column(String, nullable=False)
    status = Column(
        SAEnum(PolicyStatus, values_callable=enum_values, native_enum=False, length=32),
        default=PolicyStatus.DRAFT,
        nullable=False,
    )
    visibility_type = Column(
        SAEnum(VisibilityType, values_callable=enum_values, native_enum=False, length=32),
        default=VisibilityType.ORGANIZATION,
        nullable=False,
    )
    department_id = Column(ForeignKey("departments.id"), nullable=True, index=True)
    # Points at a row of policy_versions for this policy. Kept without a FK
    # constraint to avoid a policies <-> policy_versions cycle; the lifecycle
    # service only ever sets it to a version it just created for this policy.
    current_version_id = Column(Uuid(as_uuid=True), nullable=True)

    department = relationship(Department, lazy="joined")

    @property
    def department_name(self):
        return self.department.name if self.department else None


class PolicyVersion(Base, UUIDMixin, CreatedAtMixin):
    """Immutable once written: versions are never updated or deleted."""

    __tablename__ = "policy_versions"

    policy_id = Column(ForeignKey("policies.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    version_string = Column(String, nullable=False)
    changelog = Column(Text, nullable=False, default="")


class Acknowledgement(Base, UUIDMixin):
    __tablename__ = "acknowledgements"
    __table_args__ = (
        UniqueConstraint("user_id", "policy_version_id", name="uq_acknowledgements_user_version"),
    )

    user_id = Column(ForeignKey("users.id"), nullable=False, index=True)
    policy_version_id = Column(ForeignKey("policy_versions.id"), nullable=False, index=True)
    timestamp = Column(DateTime, nullable=False)
    signature_hash = Column(String(64), nullable=False)
