from sqlalchemy import Column, String, UniqueConstraint
from policyflow.database import Base
from policyflow.shared.models import AuditMixin


class Department(Base, AuditMixin):
    __tablename__ = "departments"
    __table_args__ = (UniqueConstraint("name", name="uq_departments_name"),)

    name = Column(String, nullable=False)
    description = Column(String, nullable=False, default="")
