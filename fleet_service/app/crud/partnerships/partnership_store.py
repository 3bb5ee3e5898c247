# app/crud/partnerships/partnership_store.py
"""Durable storage and lookup of directed partnership records.

No business rules live here beyond the pair uniqueness; transitions are
validated by the lifecycle manager before it calls :func:`update`.
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from shared.core.exceptions import DuplicateError, NotFoundError, ValidationError
from ...enum.partnership_enum import PartnershipStatus
from ...models.partnerships import Partnership

UPDATABLE_FIELDS = {
    "status", "invitation_message", "notes",
    "contact_name", "contact_email", "contact_phone",
    "allow_reporting", "allow_viewing", "restricted_equipment_ids",
    "reports_received", "reports_provided", "last_activity",
    "accepted_at", "declined_at", "suspended_at",
}

DECLINED = PartnershipStatus.declined.value


def _with_companies(query):
    return query.options(joinedload(Partnership.initiator),
                         joinedload(Partnership.partner))


def _pair_filter(company_a: UUID, company_b: UUID):
    return or_(
        and_(Partnership.initiator_id == company_a,
             Partnership.partner_id == company_b),
        and_(Partnership.initiator_id == company_b,
             Partnership.partner_id == company_a),
    )


def get_partnership(db: Session, partnership_id: UUID) -> Optional[Partnership]:
    return (
        _with_companies(db.query(Partnership))
        .filter(Partnership.id == partnership_id)
        .first()
    )


def find_by_pair(db: Session, company_a: UUID, company_b: UUID,
                 include_declined: bool = False) -> Optional[Partnership]:
    """Directed record company_a -> company_b.

    The live (non-declined) record wins; declined history is only returned
    when asked for, most recent first.
    """
    base = _with_companies(db.query(Partnership)).filter(
        Partnership.initiator_id == company_a,
        Partnership.partner_id == company_b,
    )
    record = base.filter(Partnership.status != DECLINED).first()
    if record is None and include_declined:
        record = base.order_by(Partnership.created_at.desc()).first()
    return record


def find_reverse(db: Session, record: Partnership) -> Optional[Partnership]:
    """The other directed record written by the same invitation, any status.

    Records of earlier invitations between the same companies never match.
    """
    return (
        _with_companies(db.query(Partnership))
        .filter(Partnership.initiator_id == record.partner_id,
                Partnership.partner_id == record.initiator_id,
                Partnership.invitation_id == record.invitation_id)
        .first()
    )


def find_active_pair(db: Session, company_a: UUID, company_b: UUID) -> List[Partnership]:
    """Non-declined records between two companies, in either direction."""
    return (
        db.query(Partnership)
        .filter(_pair_filter(company_a, company_b),
                Partnership.status != DECLINED)
        .all()
    )


def lock_pair(db: Session, company_a: UUID, company_b: UUID) -> List[Partnership]:
    """Row lock on both live directions of an unordered pair.

    Held until the next commit; backends without SELECT ... FOR UPDATE
    (sqlite) fall back to the optimistic version check on each record.
    """
    return (
        db.query(Partnership)
        .filter(_pair_filter(company_a, company_b),
                Partnership.status != DECLINED)
        .with_for_update()
        .all()
    )


def find_active_for_company(db: Session, company_id: UUID,
                            status: Optional[PartnershipStatus] = None):
    """Query of every directed record the company is part of."""
    query = _with_companies(db.query(Partnership)).filter(
        or_(Partnership.initiator_id == company_id,
            Partnership.partner_id == company_id)
    )
    if status:
        query = query.filter(Partnership.status == PartnershipStatus(status).value)
    return query.order_by(Partnership.created_at.desc(), Partnership.id)


def create(db: Session, record: Partnership,
           reverse: Optional[Partnership] = None) -> Partnership:
    """Insert a directed record, and its reverse when given, in one transaction."""
    if find_active_pair(db, record.initiator_id, record.partner_id):
        raise DuplicateError("Partnership already exists or pending")

    try:
        db.add(record)
        db.flush()
        if reverse is not None:
            db.add(reverse)
            db.flush()
        db.commit()
    except IntegrityError:
        # a concurrent invite won the race on uix_partnership_active_pair
        db.rollback()
        raise DuplicateError("Partnership already exists or pending")

    db.refresh(record)
    if reverse is not None:
        db.refresh(reverse)
    return record


def update(db: Session, partnership_id: UUID, patch: dict) -> Partnership:
    unknown = set(patch) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(
            f"Unknown partnership fields: {', '.join(sorted(unknown))}")

    record = get_partnership(db, partnership_id)
    if not record:
        raise NotFoundError("Partnership not found")

    for field, value in patch.items():
        setattr(record, field, value)

    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    db.refresh(record)
    return record


def increment_metrics(db: Session, partnership_id: UUID, received: int = 0,
                      provided: int = 0, at: Optional[datetime] = None):
    """Atomic counter bump, flushed but not committed."""
    values = {
        Partnership.reports_received: Partnership.reports_received + received,
        Partnership.reports_provided: Partnership.reports_provided + provided,
    }
    if at is not None:
        values[Partnership.last_activity] = at

    (
        db.query(Partnership)
        .filter(Partnership.id == partnership_id)
        .update(values, synchronize_session=False)
    )
    db.flush()
