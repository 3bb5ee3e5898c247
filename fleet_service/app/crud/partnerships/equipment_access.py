# app/crud/partnerships/equipment_access.py
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from shared.core.exceptions import (ForbiddenError, InactiveError,
                                    NotFoundError)
from ...enum.partnership_enum import PartnershipStatus
from ...models.equipment import Equipment
from ...models.partnerships import Partnership
from ...schemas.partnerships_schemas import VisibleEquipmentOut
from ..equipment import equipment_registry
from . import partnership_store as store

logger = logging.getLogger(__name__)

ACCEPTED = PartnershipStatus.accepted.value


@dataclass
class ReportAuthorization:
    partnership: Partnership
    equipment: Equipment
    owner_record: Partnership
    reporter_record: Optional[Partnership]
    owner_company_id: UUID


def granted_partnerships(db: Session, company_id: UUID) -> List[Partnership]:
    """Accepted records granting ``company_id`` access to another company's equipment."""
    return (
        db.query(Partnership)
        .options(joinedload(Partnership.initiator))
        .filter(Partnership.partner_id == company_id,
                Partnership.status == ACCEPTED)
        .order_by(Partnership.created_at.asc(), Partnership.id)
        .all()
    )


def visible_equipment(db: Session, company_id: UUID) -> List[VisibleEquipmentOut]:
    """Partner equipment visible to ``company_id``.

    Listed once per partnership it is visible through, so the same machine
    may show up twice with different partnership ids.
    """
    visible = []
    for partnership in granted_partnerships(db, company_id):
        rules = partnership.access_rules
        if not rules.allow_viewing:
            continue

        source_name = partnership.initiator.name if partnership.initiator else ""
        items = equipment_registry.list_company_equipment(
            db, partnership.initiator_id, rules.restricted_equipment_ids)

        for equipment in items:
            visible.append(VisibleEquipmentOut(
                id=equipment.id,
                billun_id=equipment.billun_id,
                internal_id=equipment.internal_id,
                license_plate=equipment.license_plate,
                name=equipment.name,
                equipment_type=equipment.equipment_type,
                status=equipment.status,
                company_id=equipment.company_id,
                partnership_id=partnership.id,
                partner_company_id=partnership.initiator_id,
                partner_company=source_name,
            ))
    return visible


def count_shared_with_partners(db: Session, company_id: UUID) -> int:
    """How many of ``company_id``'s machines its partners can see, summed per partnership."""
    outbound = (
        db.query(Partnership)
        .filter(Partnership.initiator_id == company_id,
                Partnership.status == ACCEPTED,
                Partnership.allow_viewing == True)
        .all()
    )
    return sum(
        equipment_registry.count_company_equipment(
            db, company_id, p.access_rules.restricted_equipment_ids)
        for p in outbound
    )


def authorize_report(db: Session, reporting_company_id: UUID, equipment_id,
                     partnership_id, commit: bool = True) -> ReportAuthorization:
    """Check a partner may file an anomaly on ``equipment_id`` and count it.

    ``commit=False`` leaves the metric increments flushed in the caller's
    transaction, so they are kept or dropped together with the anomaly.
    """
    partnership = store.get_partnership(db, partnership_id)
    if not partnership:
        raise NotFoundError("Partnership not found")

    equipment = equipment_registry.get_equipment(db, equipment_id)
    if not equipment:
        raise NotFoundError("Equipment not found")

    if partnership.status != ACCEPTED:
        raise InactiveError("Invalid or inactive partnership")

    if not partnership.involves(reporting_company_id):
        raise ForbiddenError("Your company is not a party to this partnership")

    owner_id = partnership.other_side(reporting_company_id)
    if equipment.company_id != owner_id:
        raise ForbiddenError("No access to this equipment via partnership")

    if partnership.initiator_id == owner_id:
        owner_record = partnership
    else:
        owner_record = store.find_by_pair(db, owner_id, reporting_company_id)

    if owner_record is None:
        logger.warning("Partnership %s has no record for owner company %s",
                       partnership.id, owner_id)
        raise ForbiddenError("No access to this equipment via partnership")

    if owner_record.status != ACCEPTED:
        raise InactiveError("Partner has suspended equipment sharing")

    rules = owner_record.access_rules
    if not rules.allow_reporting:
        raise ForbiddenError("Partner does not allow anomaly reporting on its equipment")
    if rules.is_restricted(equipment.id):
        raise ForbiddenError("This equipment is restricted for this partnership")

    if partnership.initiator_id == reporting_company_id:
        reporter_record = partnership
    else:
        reporter_record = store.find_by_pair(db, reporting_company_id, owner_id)

    now = datetime.now(timezone.utc)
    store.increment_metrics(db, owner_record.id, received=1, at=now)
    if reporter_record is not None:
        store.increment_metrics(db, reporter_record.id, provided=1, at=now)
    else:
        logger.warning("Reporter record %s -> %s missing, reportsProvided not counted",
                       reporting_company_id, owner_id)

    if commit:
        db.commit()

    return ReportAuthorization(
        partnership=partnership,
        equipment=equipment,
        owner_record=owner_record,
        reporter_record=reporter_record,
        owner_company_id=owner_id,
    )
