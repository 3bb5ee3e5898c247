import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Uuid, func
from sqlalchemy.orm import relationship
from shared.core.database import Base
from ..enum.equipment_enum import EquipmentStatus


class Equipment(Base):
    __tablename__ = "equipment"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    billun_id = Column(String(32), unique=True, nullable=False)  # BLN-2024-XXXXXX
    internal_id = Column(String(64))
    license_plate = Column(String(32))
    name = Column(String(200))
    equipment_type = Column(String(16), nullable=False)  # vehicle|trailer|handling
    brand = Column(String(100))
    model = Column(String(100))
    year_of_service = Column(Integer)
    status = Column(String(16), nullable=False,
                    default=EquipmentStatus.available.value)
    company_id = Column(Uuid(as_uuid=True), ForeignKey(
        "companies.id", ondelete="CASCADE"), nullable=False, index=True)
    is_deleted = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True),
                        server_default=func.now(), onupdate=func.now())

    company = relationship("Company", back_populates="equipment")
