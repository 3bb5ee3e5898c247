import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, JSON, String, Text, Uuid, func
from sqlalchemy.orm import relationship
from shared.core.database import Base
from ..enum.anomaly_enum import AnomalyCriticality, AnomalyStatus, ImmobilizationStatus


class Anomaly(Base):
    __tablename__ = "anomalies"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    equipment_id = Column(Uuid(as_uuid=True), ForeignKey(
        "equipment.id", ondelete="CASCADE"), nullable=False, index=True)
    reported_by_id = Column(Uuid(as_uuid=True), ForeignKey(
        "users.id", ondelete="SET NULL"), nullable=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    criticality = Column(String(16), nullable=False,
                         default=AnomalyCriticality.ok.value)
    immobilization_status = Column(String(16), nullable=False,
                                   default=ImmobilizationStatus.mobile.value)
    photos = Column(JSON, default=list, nullable=False)
    location = Column(String(255))
    status = Column(String(16), nullable=False,
                    default=AnomalyStatus.reported.value)

    # partnership context
    reported_via_partnership = Column(Boolean, default=False, nullable=False)
    partner_company_id = Column(Uuid(as_uuid=True), ForeignKey(
        "companies.id", ondelete="SET NULL"), nullable=True)
    partnership_id = Column(Uuid(as_uuid=True), ForeignKey(
        "partnerships.id", ondelete="SET NULL"), nullable=True)

    date_reported = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True),
                        server_default=func.now(), onupdate=func.now())

    equipment = relationship("Equipment")
