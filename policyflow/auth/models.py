from enum import Enum
from sqlalchemy import Column, String, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import relationship
from policyflow.database import Base
from policyflow.shared.models import AuditMixin
from policyflow.departments.models import Department


def enum_values(enum_cls) -> list[str]:
    """Persist enum values (e.g. "SuperAdmin") rather than member names."""
    return [member.value for member in enum_cls]


class Role(str, Enum):
    SUPER_ADMIN = "SuperAdmin"
    DEPT_ADMIN = "DeptAdmin"
    STAFF = "Staff"


class User(Base, AuditMixin):
    __tablename__ = "users"

    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    role = Column(
        SAEnum(Role, values_callable=enum_values, native_enum=False, length=32),
        default=Role.STAFF,
        nullable=False,
    )
    # Required for DeptAdmin by the access rules, not by the schema.
    department_id = Column(ForeignKey("departments.id"), nullable=True, index=True)
    # Audit only
    created_by = Column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    department = relationship(Department, lazy="joined")

    @property
    def department_name(self):
        return self.department.name if self.department else None
