import uuid
from dataclasses import dataclass, field
from typing import FrozenSet

from sqlalchemy import (Boolean, Column, DateTime, ForeignKey, Index, Integer,
                        JSON, String, Text, Uuid, func, text)
from sqlalchemy.orm import relationship
from shared.core.database import Base
from ..enum.partnership_enum import PartnershipStatus


@dataclass(frozen=True)
class EquipmentAccessRules:
    """What the partner may do with the initiator's equipment."""
    allow_reporting: bool = True
    allow_viewing: bool = True
    restricted_equipment_ids: FrozenSet[str] = field(default_factory=frozenset)

    def is_restricted(self, equipment_id) -> bool:
        return str(equipment_id) in self.restricted_equipment_ids


class Partnership(Base):
    """One direction of a company to company relationship.

    Every relationship is stored as two records, initiator -> partner and
    partner -> initiator. Each record holds the access rules its initiator
    grants to its partner over the initiator's own equipment.
    """
    __tablename__ = "partnerships"
    __table_args__ = (
        # at most one live record per direction, declined history is kept
        Index("uix_partnership_active_pair", "initiator_id", "partner_id",
              unique=True,
              postgresql_where=text("status != 'declined'"),
              sqlite_where=text("status != 'declined'")),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    initiator_id = Column(Uuid(as_uuid=True), ForeignKey(
        "companies.id", ondelete="CASCADE"), nullable=False, index=True)
    partner_id = Column(Uuid(as_uuid=True), ForeignKey(
        "companies.id", ondelete="CASCADE"), nullable=False, index=True)
    # shared by the two directed records written by one invitation
    invitation_id = Column(Uuid(as_uuid=True), nullable=False, index=True,
                           default=uuid.uuid4)
    # company that sent the invitation, same value on both records of a pair
    invited_by_id = Column(Uuid(as_uuid=True), ForeignKey(
        "companies.id", ondelete="SET NULL"), nullable=True)

    status = Column(String(16), nullable=False,
                    default=PartnershipStatus.pending.value)
    invitation_message = Column(Text)
    notes = Column(Text)

    # contact person of the invitation
    contact_name = Column(String(200), nullable=False)
    contact_email = Column(String(200), nullable=False)
    contact_phone = Column(String(32))

    # equipment access granted by the initiator to the partner
    allow_reporting = Column(Boolean, default=True, nullable=False)
    allow_viewing = Column(Boolean, default=True, nullable=False)
    restricted_equipment_ids = Column(JSON, default=list, nullable=False)

    # metrics
    reports_received = Column(Integer, default=0, nullable=False)
    reports_provided = Column(Integer, default=0, nullable=False)
    last_activity = Column(DateTime(timezone=True), server_default=func.now())

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True),
                        server_default=func.now(), onupdate=func.now())
    accepted_at = Column(DateTime(timezone=True))
    declined_at = Column(DateTime(timezone=True))
    suspended_at = Column(DateTime(timezone=True))

    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    initiator = relationship("Company", foreign_keys=[initiator_id])
    partner = relationship("Company", foreign_keys=[partner_id])

    @property
    def access_rules(self) -> EquipmentAccessRules:
        return EquipmentAccessRules(
            allow_reporting=bool(self.allow_reporting),
            allow_viewing=bool(self.allow_viewing),
            restricted_equipment_ids=frozenset(
                str(i) for i in (self.restricted_equipment_ids or [])),
        )

    def involves(self, company_id) -> bool:
        return company_id in (self.initiator_id, self.partner_id)

    def other_side(self, company_id):
        return self.partner_id if company_id == self.initiator_id else self.initiator_id

    def __repr__(self):
        return (f"<Partnership {self.id} {self.initiator_id}->{self.partner_id} "
                f"{self.status}>")
