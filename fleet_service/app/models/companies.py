import uuid
from sqlalchemy import Boolean, Column, DateTime, String, Uuid, func
from sqlalchemy.orm import relationship
from shared.core.database import Base
from ..enum.partnership_enum import CompanyStatus


class Company(Base):
    __tablename__ = "companies"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False, index=True)
    siret = Column(String(32), nullable=True)
    status = Column(String(32), nullable=False,
                    default=CompanyStatus.active.value)
    # placeholder created while inviting a company that was not onboarded yet
    is_provisional = Column(Boolean, default=False, nullable=False)
    main_manager_id = Column(Uuid(as_uuid=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True),
                        server_default=func.now(), onupdate=func.now())

    users = relationship("Users", back_populates="company",
                         foreign_keys="Users.company_id")
    equipment = relationship("Equipment", back_populates="company")
