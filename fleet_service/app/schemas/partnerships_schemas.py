from pydantic import Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime

from shared.core.schemas import CamelModel, CommonQueryParams, Lookup
from ..enum.equipment_enum import EquipmentStatus, EquipmentType
from ..enum.partnership_enum import PartnershipStatus
from ..models.partnerships import EquipmentAccessRules, Partnership


class EquipmentAccessIn(CamelModel):
    allow_reporting: bool = True
    allow_viewing: bool = True
    restricted_equipment_ids: List[UUID] = Field(default_factory=list)

    def to_rules(self) -> EquipmentAccessRules:
        return EquipmentAccessRules(
            allow_reporting=self.allow_reporting,
            allow_viewing=self.allow_viewing,
            restricted_equipment_ids=frozenset(
                str(i) for i in self.restricted_equipment_ids),
        )


class EquipmentAccessUpdate(CamelModel):
    allow_reporting: Optional[bool] = None
    allow_viewing: Optional[bool] = None
    restricted_equipment_ids: Optional[List[UUID]] = None


class PartnershipInvite(CamelModel):
    # contact fields are checked by the lifecycle manager so a missing one
    # answers 400 and names the field
    target_company_name: Optional[str] = None
    target_company_id: Optional[UUID] = None
    contact_email: Optional[str] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    siret: Optional[str] = None
    message: Optional[str] = None
    notes: Optional[str] = None
    equipment_access: Optional[EquipmentAccessIn] = None


class PartnershipRequest(CommonQueryParams):
    status: Optional[PartnershipStatus] = None


class ContactPersonOut(CamelModel):
    name: str
    email: str
    phone: Optional[str] = None


class EquipmentAccessOut(CamelModel):
    allow_reporting: bool
    allow_viewing: bool
    restricted_equipment_ids: List[str]


class PartnershipMetricsOut(CamelModel):
    reports_received: int
    reports_provided: int
    last_activity: Optional[datetime] = None


class PartnershipOut(CamelModel):
    id: UUID
    initiator: Lookup
    partner: Lookup
    invitation_id: Optional[UUID] = None
    invited_by_id: Optional[UUID] = None
    status: PartnershipStatus
    invitation_message: Optional[str] = None
    notes: Optional[str] = None
    contact_person: ContactPersonOut
    equipment_access: EquipmentAccessOut
    metrics: PartnershipMetricsOut
    created_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None
    suspended_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Partnership) -> "PartnershipOut":
        rules = record.access_rules
        return cls(
            id=record.id,
            initiator=Lookup(id=record.initiator_id,
                             name=record.initiator.name if record.initiator else ""),
            partner=Lookup(id=record.partner_id,
                           name=record.partner.name if record.partner else ""),
            invitation_id=record.invitation_id,
            invited_by_id=record.invited_by_id,
            status=record.status,
            invitation_message=record.invitation_message,
            notes=record.notes,
            contact_person=ContactPersonOut(
                name=record.contact_name,
                email=record.contact_email,
                phone=record.contact_phone,
            ),
            equipment_access=EquipmentAccessOut(
                allow_reporting=rules.allow_reporting,
                allow_viewing=rules.allow_viewing,
                restricted_equipment_ids=sorted(rules.restricted_equipment_ids),
            ),
            metrics=PartnershipMetricsOut(
                reports_received=record.reports_received or 0,
                reports_provided=record.reports_provided or 0,
                last_activity=record.last_activity,
            ),
            created_at=record.created_at,
            accepted_at=record.accepted_at,
            declined_at=record.declined_at,
            suspended_at=record.suspended_at,
        )


class VisibleEquipmentOut(CamelModel):
    id: UUID
    billun_id: str
    internal_id: Optional[str] = None
    license_plate: Optional[str] = None
    name: Optional[str] = None
    equipment_type: EquipmentType
    status: EquipmentStatus
    company_id: UUID
    partnership_id: UUID
    partner_company_id: UUID
    partner_company: str


class PartnershipStats(CamelModel):
    active_partnerships: int
    pending_invitations: int
    sent_invitations: int
    suspended_partnerships: int
    total_shared_equipment: int
    equipment_shared_with_partners: int
    reports_received_via_partners: int
    reports_provided_to_partners: int
