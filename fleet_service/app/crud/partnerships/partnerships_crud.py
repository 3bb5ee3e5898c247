# app/crud/partnerships/partnerships_crud.py
from typing import Dict
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from shared.core.exceptions import ForbiddenError, NotFoundError
from ...enum.partnership_enum import PartnershipStatus
from ...models.companies import Company
from ...models.partnerships import Partnership
from ...schemas.partnerships_schemas import (PartnershipOut, PartnershipRequest,
                                             PartnershipStats)
from . import equipment_access
from . import partnership_store as store


def get_partnerships(db: Session, company_id: UUID, params: PartnershipRequest) -> Dict:
    query = store.find_active_for_company(db, company_id, params.status)

    if params.search:
        search_term = f"%{params.search}%"
        matching_companies = (
            db.query(Company.id)
            .filter(Company.name.ilike(search_term))
        )
        query = query.filter(or_(
            Partnership.initiator_id.in_(matching_companies),
            Partnership.partner_id.in_(matching_companies),
            Partnership.contact_name.ilike(search_term),
            Partnership.contact_email.ilike(search_term),
        ))

    total = query.count()
    if params.skip:
        query = query.offset(params.skip)
    if params.limit:
        query = query.limit(params.limit)

    return {
        "partnerships": [PartnershipOut.from_record(p) for p in query.all()],
        "total": total,
    }


def get_partnership_for_company(db: Session, partnership_id: UUID,
                                company_id: UUID) -> PartnershipOut:
    record = store.get_partnership(db, partnership_id)
    if not record:
        raise NotFoundError("Partnership not found")
    if not record.involves(company_id):
        raise ForbiddenError("Your company is not a party to this partnership")
    return PartnershipOut.from_record(record)


def _count(db: Session, *criteria) -> int:
    return db.query(func.count(Partnership.id)).filter(*criteria).scalar() or 0


def _sum(db: Session, column, *criteria) -> int:
    return db.query(func.coalesce(func.sum(column), 0)).filter(*criteria).scalar() or 0


def get_partnership_stats(db: Session, company_id: UUID) -> PartnershipStats:
    """Dashboard counters for a company.

    Relationships are counted once, on the record the company initiates.
    """
    pending = PartnershipStatus.pending.value
    accepted = PartnershipStatus.accepted.value
    suspended = PartnershipStatus.suspended.value

    owned = Partnership.initiator_id == company_id

    active_partnerships = _count(db, owned, Partnership.status == accepted)

    # incoming invitations waiting for an answer
    pending_invitations = _count(
        db,
        Partnership.partner_id == company_id,
        Partnership.status == pending,
        Partnership.invited_by_id != company_id,
    )

    sent_invitations = _count(
        db, owned,
        Partnership.status == pending,
        Partnership.invited_by_id == company_id,
    )

    suspended_partnerships = _count(
        db,
        or_(Partnership.initiator_id == company_id,
            Partnership.partner_id == company_id),
        Partnership.status == suspended,
    )

    return PartnershipStats(
        active_partnerships=active_partnerships,
        pending_invitations=pending_invitations,
        sent_invitations=sent_invitations,
        suspended_partnerships=suspended_partnerships,
        total_shared_equipment=len(equipment_access.visible_equipment(db, company_id)),
        equipment_shared_with_partners=equipment_access.count_shared_with_partners(
            db, company_id),
        reports_received_via_partners=_sum(db, Partnership.reports_received, owned),
        reports_provided_to_partners=_sum(db, Partnership.reports_provided, owned),
    )
