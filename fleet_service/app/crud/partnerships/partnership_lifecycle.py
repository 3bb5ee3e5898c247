# app/crud/partnerships/partnership_lifecycle.py
"""Invitation / accept / decline protocol over directed partnership pairs.

A relationship between two companies is two records, A -> B and B -> A.
``accept`` and ``decline`` move both records together: the named record is
written and committed first, then the reverse record. A failed reverse write
is retried ``settings.PAIRED_WRITE_RETRIES`` times; after that the first write
stays as the authoritative partial result and ``InconsistencyError`` is raised
so an operator can run :func:`synchronize`.

Paired writes hold the row lock on both directions of the pair (see
:func:`partnership_store.lock_pair`) before each of the two writes, since the
first commit releases it. Suspend, resume and access rule changes write a
single record and rely on its version column alone.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from shared.core.config import settings
from shared.core.exceptions import (ConflictError, ForbiddenError,
                                    InconsistencyError, InvalidStateError,
                                    NotFoundError, ValidationError)
from ...enum.partnership_enum import PartnershipStatus
from ...models.partnerships import EquipmentAccessRules, Partnership
from ...schemas.partnerships_schemas import EquipmentAccessUpdate, PartnershipInvite
from ..directory import company_directory
from . import partnership_store as store

logger = logging.getLogger(__name__)

PENDING = PartnershipStatus.pending.value
ACCEPTED = PartnershipStatus.accepted.value
DECLINED = PartnershipStatus.declined.value
SUSPENDED = PartnershipStatus.suspended.value


@dataclass
class TransitionResult:
    partnership: Partnership
    reverse: Optional[Partnership] = None
    reverse_missing: bool = False
    repaired: bool = False


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def access_columns(rules: EquipmentAccessRules) -> dict:
    return {
        "allow_reporting": rules.allow_reporting,
        "allow_viewing": rules.allow_viewing,
        "restricted_equipment_ids": sorted(rules.restricted_equipment_ids),
    }


# ----------------------------------------------------------------------
# INVITE
# ----------------------------------------------------------------------

def _validate_invite(payload: PartnershipInvite):
    missing = []
    if not (payload.target_company_name or "").strip() and not payload.target_company_id:
        missing.append("targetCompanyName")
    if not (payload.contact_email or "").strip():
        missing.append("contactEmail")
    if not (payload.contact_name or "").strip():
        missing.append("contactName")
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            details={"missing": missing})

    try:
        validate_email(payload.contact_email.strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid contact email: {e}")


def _resolve_target(db: Session, payload: PartnershipInvite):
    """Existing company, or None when a placeholder has to be provisioned."""
    if payload.target_company_id:
        return company_directory.require_company(db, payload.target_company_id)
    return company_directory.find_company_by_name(db, payload.target_company_name)


def invite(db: Session, from_company_id: UUID, payload: PartnershipInvite) -> Partnership:
    _validate_invite(payload)
    company_directory.require_company(db, from_company_id)

    contact_name = payload.contact_name.strip()
    contact_email = payload.contact_email.strip()

    target = _resolve_target(db, payload)
    if target is not None:
        if target.id == from_company_id:
            raise ValidationError("A company cannot invite itself")
        if store.find_active_pair(db, from_company_id, target.id):
            raise ConflictError("Partnership already exists or pending")
    else:
        target = company_directory.provision_company(
            db,
            name=payload.target_company_name,
            contact_name=contact_name,
            contact_email=contact_email,
            contact_phone=payload.contact_phone,
            siret=payload.siret,
        ).company

    invitation_id = uuid.uuid4()
    rules = (payload.equipment_access.to_rules()
             if payload.equipment_access else EquipmentAccessRules())

    forward = Partnership(
        initiator_id=from_company_id,
        partner_id=target.id,
        invitation_id=invitation_id,
        invited_by_id=from_company_id,
        status=PENDING,
        invitation_message=payload.message,
        notes=payload.notes,
        contact_name=contact_name,
        contact_email=contact_email,
        contact_phone=payload.contact_phone or "",
        **access_columns(rules),
    )
    # the invited side grants its own rules on this one after accepting
    mirror = Partnership(
        initiator_id=target.id,
        partner_id=from_company_id,
        invitation_id=invitation_id,
        invited_by_id=from_company_id,
        status=PENDING,
        invitation_message=f"Partnership invitation from {contact_name}",
        contact_name=contact_name,
        contact_email=contact_email,
        contact_phone=payload.contact_phone or "",
        **access_columns(EquipmentAccessRules()),
    )

    record = store.create(db, forward, mirror)
    logger.info("Partnership invitation %s sent from company %s to company %s",
                record.id, from_company_id, target.id)
    # TODO: email the invitation to contact_email
    return record


# ----------------------------------------------------------------------
# ACCEPT / DECLINE
# ----------------------------------------------------------------------

def _require_partnership(db: Session, partnership_id: UUID) -> Partnership:
    record = store.get_partnership(db, partnership_id)
    if not record:
        raise NotFoundError("Partnership not found")
    return record


def _require_party(record: Partnership, company_id: UUID):
    if not record.involves(company_id):
        raise ForbiddenError("Your company is not a party to this partnership")


def _load_for_answer(db: Session, partnership_id: UUID, company_id: UUID,
                     action: str) -> Partnership:
    record = _require_partnership(db, partnership_id)
    _require_party(record, company_id)

    if record.status != PENDING:
        raise InvalidStateError(
            f"Partnership is not in pending status (current status: {record.status})")

    if record.partner_id != company_id or record.invited_by_id == company_id:
        raise ForbiddenError(
            f"Only the invited company can {action} this partnership")
    return record


def _write_first(db: Session, record: Partnership, patch: dict) -> Partnership:
    try:
        return store.update(db, record.id, patch)
    except StaleDataError:
        raise InvalidStateError(
            "Partnership was modified by another request, reload it and retry")


def _write_reverse(db: Session, first: Partnership, reverse_id: UUID,
                   patch: dict, action: str) -> Partnership:
    attempts = settings.PAIRED_WRITE_RETRIES + 1
    for attempt in range(1, attempts + 1):
        try:
            store.lock_pair(db, first.initiator_id, first.partner_id)
            return store.update(db, reverse_id, patch)
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("%s: reverse partnership %s write failed (attempt %s/%s): %s",
                           action, reverse_id, attempt, attempts, e)

    logger.error("%s: partnership %s is %s but reverse partnership %s was not updated",
                 action, first.id, first.status, reverse_id)
    raise InconsistencyError(
        f"Partnership {action} was applied to one direction only, "
        f"reverse partnership could not be updated",
        details={
            "partnership_id": str(first.id),
            "reverse_partnership_id": str(reverse_id),
            "status": first.status,
        })


def _apply_paired_update(db: Session, record: Partnership, patch: dict,
                         action: str) -> TransitionResult:
    store.lock_pair(db, record.initiator_id, record.partner_id)
    reverse = store.find_by_pair(db, record.partner_id, record.initiator_id)
    reverse_id = reverse.id if reverse else None

    first = _write_first(db, record, patch)

    if reverse_id is None:
        logger.warning("%s: reverse partnership %s -> %s missing for partnership %s",
                       action, first.partner_id, first.initiator_id, first.id)
        return TransitionResult(partnership=first, reverse_missing=True)

    second = _write_reverse(db, first, reverse_id, patch, action)
    return TransitionResult(partnership=first, reverse=second)


def accept(db: Session, partnership_id: UUID, company_id: UUID) -> TransitionResult:
    record = _load_for_answer(db, partnership_id, company_id, "accept")
    patch = {"status": ACCEPTED, "accepted_at": utcnow()}
    result = _apply_paired_update(db, record, patch, "accept")
    logger.info("Partnership %s accepted by company %s", partnership_id, company_id)
    return result


def decline(db: Session, partnership_id: UUID, company_id: UUID) -> TransitionResult:
    record = _load_for_answer(db, partnership_id, company_id, "decline")
    patch = {"status": DECLINED, "declined_at": utcnow()}
    result = _apply_paired_update(db, record, patch, "decline")
    logger.info("Partnership %s declined by company %s", partnership_id, company_id)
    return result


# ----------------------------------------------------------------------
# UNILATERAL CHANGES (owner of the directed record only)
# ----------------------------------------------------------------------

def _load_owned(db: Session, partnership_id: UUID, company_id: UUID,
                action: str) -> Partnership:
    record = _require_partnership(db, partnership_id)
    _require_party(record, company_id)
    if record.initiator_id != company_id:
        raise ForbiddenError(
            f"Only the company sharing its equipment on this partnership can {action} it")
    return record


def suspend(db: Session, partnership_id: UUID, company_id: UUID) -> Partnership:
    record = _load_owned(db, partnership_id, company_id, "suspend")
    if record.status != ACCEPTED:
        raise InvalidStateError(
            f"Only accepted partnerships can be suspended (current status: {record.status})")

    record = _write_first(db, record, {"status": SUSPENDED,
                                       "suspended_at": utcnow()})
    logger.info("Partnership %s suspended by company %s", partnership_id, company_id)
    return record


def resume(db: Session, partnership_id: UUID, company_id: UUID) -> Partnership:
    record = _load_owned(db, partnership_id, company_id, "resume")
    if record.status != SUSPENDED:
        raise InvalidStateError(
            f"Partnership is not suspended (current status: {record.status})")

    record = _write_first(db, record, {"status": ACCEPTED, "suspended_at": None})
    logger.info("Partnership %s resumed by company %s", partnership_id, company_id)
    return record


def update_access_rules(db: Session, partnership_id: UUID, company_id: UUID,
                        changes: EquipmentAccessUpdate) -> Partnership:
    record = _load_owned(db, partnership_id, company_id, "change access rules of")
    if record.status == DECLINED:
        raise InvalidStateError("Partnership has been declined")

    patch = changes.model_dump(exclude_unset=True, exclude_none=True)
    if "restricted_equipment_ids" in patch:
        patch["restricted_equipment_ids"] = sorted(
            {str(i) for i in patch["restricted_equipment_ids"]})
    if not patch:
        return record

    return _write_first(db, record, patch)


# ----------------------------------------------------------------------
# OPERATOR REPAIR
# ----------------------------------------------------------------------

EXPECTED_REVERSE_STATUS = {
    PENDING: {PENDING},
    ACCEPTED: {ACCEPTED, SUSPENDED},
    SUSPENDED: {ACCEPTED, SUSPENDED},
    DECLINED: {DECLINED},
}


def synchronize(db: Session, partnership_id: UUID) -> TransitionResult:
    """Repair a pair left half-updated by a failed paired write.

    Only the reverse record of the same invitation is compared, so declined
    history of an earlier invitation never overrides a live record. Within the
    pair a declined record is terminal and wins; otherwise the record that
    left ``pending`` is the authoritative one. A missing reverse record is
    recreated.
    """
    record = _require_partnership(db, partnership_id)
    store.lock_pair(db, record.initiator_id, record.partner_id)
    reverse = store.find_reverse(db, record)

    if reverse is None:
        if record.status == DECLINED:
            return TransitionResult(partnership=record)

        mirror = Partnership(
            initiator_id=record.partner_id,
            partner_id=record.initiator_id,
            invitation_id=record.invitation_id,
            invited_by_id=record.invited_by_id,
            status=ACCEPTED if record.status in (ACCEPTED, SUSPENDED) else record.status,
            invitation_message=record.invitation_message,
            contact_name=record.contact_name,
            contact_email=record.contact_email,
            contact_phone=record.contact_phone,
            accepted_at=record.accepted_at,
            **access_columns(EquipmentAccessRules()),
        )
        db.add(mirror)
        db.commit()
        db.refresh(mirror)
        logger.warning("Recreated missing reverse partnership %s for %s",
                       mirror.id, record.id)
        return TransitionResult(partnership=record, reverse=mirror, repaired=True)

    if reverse.status in EXPECTED_REVERSE_STATUS[record.status]:
        return TransitionResult(partnership=record, reverse=reverse)

    if reverse.status == DECLINED or record.status == PENDING:
        source, target = reverse, record
    else:
        source, target = record, reverse

    target_status = ACCEPTED if source.status in (ACCEPTED, SUSPENDED) else source.status
    patch = {"status": target_status}
    if target_status == ACCEPTED:
        patch["accepted_at"] = source.accepted_at or utcnow()
    elif target_status == DECLINED:
        patch["declined_at"] = source.declined_at or utcnow()

    _write_reverse(db, source, target.id, patch, "synchronize")
    db.refresh(record)
    db.refresh(reverse)
    logger.warning("Synchronized partnership %s to %s from partnership %s",
                   target.id, target_status, source.id)
    return TransitionResult(partnership=record, reverse=reverse, repaired=True)
