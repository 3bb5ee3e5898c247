import uuid

import pytest
from sqlalchemy.exc import OperationalError

from shared.core.exceptions import (ConflictError, ForbiddenError,
                                    InconsistencyError, InvalidStateError,
                                    NotFoundError, ValidationError)
from shared.core.database import SessionLocal
from shared.models.users import Users
from fleet_service.app.crud.directory import company_directory
from fleet_service.app.crud.partnerships import partnership_lifecycle as lifecycle
from fleet_service.app.crud.partnerships import partnership_store as store
from fleet_service.app.models import Company, Partnership
from fleet_service.app.schemas.partnerships_schemas import (EquipmentAccessUpdate,
                                                            PartnershipInvite)


def _invite(db, sender, target_name, **overrides):
    payload = {
        "targetCompanyName": target_name,
        "contactEmail": "fleet.manager@example.com",
        "contactName": "Jeanne Martin",
    }
    payload.update(overrides)
    return lifecycle.invite(db, sender.id, PartnershipInvite(**payload))


def _reverse(db, record):
    db.expire_all()
    return store.find_by_pair(db, record.partner_id, record.initiator_id,
                              include_declined=True)


@pytest.fixture
def pending(db, acme, borel):
    return _invite(db, acme, borel.name)


@pytest.fixture
def accepted(db, pending, borel):
    return lifecycle.accept(db, pending.id, borel.id).partnership


def _fail_writes_to(monkeypatch, record_id, failures=None):
    """Make store.update raise for ``record_id``; ``failures`` limits how often."""
    original = store.update
    calls = {"count": 0}

    def flaky(db, partnership_id, patch):
        if partnership_id == record_id and (failures is None or calls["count"] < failures):
            calls["count"] += 1
            raise OperationalError("UPDATE partnerships", {}, Exception("disk I/O error"))
        return original(db, partnership_id, patch)

    monkeypatch.setattr(store, "update", flaky)
    return calls


# =============================================================================
# invite
# =============================================================================

def test_invite_creates_both_pending_records(db, acme, borel):
    record = _invite(db, acme, borel.name, message="hello",
                     equipmentAccess={"allowReporting": False})

    assert record.initiator_id == acme.id
    assert record.partner_id == borel.id
    assert record.status == "pending"
    assert record.invitation_message == "hello"
    assert record.allow_reporting is False

    mirror = _reverse(db, record)
    assert mirror.status == "pending"
    assert mirror.invited_by_id == acme.id
    assert mirror.invitation_message == "Partnership invitation from Jeanne Martin"
    # the invited side has not chosen its own rules yet
    assert mirror.allow_reporting is True
    assert mirror.allow_viewing is True
    assert db.query(Partnership).count() == 2


def test_invite_matches_existing_company_case_insensitively(db, acme, borel):
    record = _invite(db, acme, "  borel TRANSPORTS ")

    assert record.partner_id == borel.id
    assert db.query(Company).count() == 2


def test_invite_unknown_company_provisions_a_placeholder(db, acme):
    record = _invite(db, acme, "Chronos Freight", contactPhone="+33 6 00 00 00 00",
                     siret="12345678900011")

    placeholder = db.query(Company).filter(Company.id == record.partner_id).one()
    assert placeholder.name == "Chronos Freight"
    assert placeholder.is_provisional is True
    assert placeholder.status == "pending_partnership"
    assert placeholder.siret == "12345678900011"

    manager = db.query(Users).filter(Users.id == placeholder.main_manager_id).one()
    assert manager.company_id == placeholder.id
    assert manager.email == "fleet.manager@example.com"
    assert manager.first_name == "Jeanne"
    assert manager.last_name == "Martin"
    assert manager.role == "manager"
    assert manager.status == "pending_activation"
    assert manager.is_temporary is True
    assert manager.username.startswith("temp_chronos_freight_")
    # bcrypt hash of a random password, nobody can sign in with it yet
    assert manager.password.startswith("$2")


@pytest.mark.parametrize("missing", ["targetCompanyName", "contactEmail", "contactName"])
def test_invite_requires_contact_fields(db, acme, missing):
    payload = {
        "targetCompanyName": "Chronos Freight",
        "contactEmail": "fleet.manager@example.com",
        "contactName": "Jeanne Martin",
    }
    payload[missing] = "  "

    with pytest.raises(ValidationError) as exc:
        lifecycle.invite(db, acme.id, PartnershipInvite(**payload))

    assert missing in exc.value.message
    assert db.query(Partnership).count() == 0


def test_invite_rejects_malformed_email(db, acme, borel):
    with pytest.raises(ValidationError):
        _invite(db, acme, borel.name, contactEmail="not-an-email")


def test_invite_self_is_rejected(db, acme):
    with pytest.raises(ValidationError):
        _invite(db, acme, acme.name)


def test_second_invite_conflicts_in_both_directions(db, acme, borel, pending):
    with pytest.raises(ConflictError):
        _invite(db, acme, borel.name)
    with pytest.raises(ConflictError):
        _invite(db, borel, acme.name)

    assert db.query(Partnership).count() == 2


def test_invite_after_decline_creates_a_new_pair(db, acme, borel, pending):
    lifecycle.decline(db, pending.id, borel.id)

    again = _invite(db, acme, borel.name)

    assert again.id != pending.id
    assert again.status == "pending"
    assert db.query(Partnership).count() == 4


def test_failed_insert_keeps_no_placeholder(db, acme, monkeypatch):
    def broken_create(db, record, reverse=None):
        db.rollback()
        raise ConflictError("Partnership already exists or pending")

    monkeypatch.setattr(store, "create", broken_create)

    with pytest.raises(ConflictError):
        _invite(db, acme, "Chronos Freight")

    assert db.query(Company).filter(Company.name == "Chronos Freight").count() == 0


# =============================================================================
# accept / decline
# =============================================================================

def test_accept_moves_both_records(db, pending, borel):
    result = lifecycle.accept(db, pending.id, borel.id)

    assert result.reverse_missing is False
    assert result.partnership.status == "accepted"
    mirror = _reverse(db, result.partnership)
    assert mirror.status == "accepted"
    assert mirror.accepted_at == result.partnership.accepted_at


def test_accept_twice_fails_and_changes_nothing(db, pending, borel):
    first = lifecycle.accept(db, pending.id, borel.id).partnership
    accepted_at = first.accepted_at

    with pytest.raises(InvalidStateError):
        lifecycle.accept(db, pending.id, borel.id)

    db.expire_all()
    record = store.get_partnership(db, pending.id)
    assert record.accepted_at == accepted_at
    assert record.reports_received == 0
    assert record.version == 2


def test_inviter_cannot_accept_its_own_invitation(db, pending, acme):
    mirror = _reverse(db, pending)

    with pytest.raises(ForbiddenError):
        lifecycle.accept(db, pending.id, acme.id)
    with pytest.raises(ForbiddenError):
        lifecycle.accept(db, mirror.id, acme.id)


def test_outsider_cannot_answer(db, pending, make_company):
    outsider = make_company()

    with pytest.raises(ForbiddenError):
        lifecycle.decline(db, pending.id, outsider.id)


def test_accept_unknown_partnership(db, borel):
    with pytest.raises(NotFoundError):
        lifecycle.accept(db, uuid.uuid4(), borel.id)


def test_decline_moves_both_records(db, pending, borel):
    result = lifecycle.decline(db, pending.id, borel.id)

    assert result.partnership.status == "declined"
    assert result.partnership.declined_at is not None
    assert _reverse(db, result.partnership).status == "declined"


def test_decline_after_accept_is_rejected(db, accepted, borel):
    with pytest.raises(InvalidStateError) as exc:
        lifecycle.decline(db, accepted.id, borel.id)

    assert "accepted" in exc.value.message
    assert _reverse(db, accepted).status == "accepted"


def test_reverse_write_is_retried_once(db, pending, borel, monkeypatch):
    mirror_id = _reverse(db, pending).id
    calls = _fail_writes_to(monkeypatch, mirror_id, failures=1)

    result = lifecycle.accept(db, pending.id, borel.id)

    assert calls["count"] == 1
    assert result.reverse.status == "accepted"


def test_reverse_write_failure_raises_inconsistency(db, pending, borel, monkeypatch):
    mirror_id = _reverse(db, pending).id
    calls = _fail_writes_to(monkeypatch, mirror_id)

    with pytest.raises(InconsistencyError) as exc:
        lifecycle.accept(db, pending.id, borel.id)

    assert calls["count"] == 2
    assert exc.value.details["partnership_id"] == str(pending.id)
    assert exc.value.details["reverse_partnership_id"] == str(mirror_id)

    # the first write stays as the authoritative partial result
    db.expire_all()
    assert store.get_partnership(db, pending.id).status == "accepted"
    assert store.get_partnership(db, mirror_id).status == "pending"


def test_accept_with_missing_reverse_reports_it(db, pending, borel):
    mirror = _reverse(db, pending)
    db.delete(mirror)
    db.commit()

    result = lifecycle.accept(db, pending.id, borel.id)

    assert result.partnership.status == "accepted"
    assert result.reverse is None
    assert result.reverse_missing is True


# =============================================================================
# suspend / resume / access rules
# =============================================================================

def test_suspend_only_touches_the_named_record(db, accepted, acme):
    record = lifecycle.suspend(db, accepted.id, acme.id)

    assert record.status == "suspended"
    assert record.suspended_at is not None
    assert _reverse(db, record).status == "accepted"


def test_only_the_owner_can_suspend(db, accepted, borel):
    with pytest.raises(ForbiddenError):
        lifecycle.suspend(db, accepted.id, borel.id)


def test_suspend_requires_accepted(db, pending, acme):
    with pytest.raises(InvalidStateError):
        lifecycle.suspend(db, pending.id, acme.id)


def test_resume_restores_accepted(db, accepted, acme):
    lifecycle.suspend(db, accepted.id, acme.id)

    record = lifecycle.resume(db, accepted.id, acme.id)

    assert record.status == "accepted"
    assert record.suspended_at is None

    with pytest.raises(InvalidStateError):
        lifecycle.resume(db, accepted.id, acme.id)


def test_update_access_rules(db, accepted, acme, make_equipment):
    truck = make_equipment(acme)

    record = lifecycle.update_access_rules(
        db, accepted.id, acme.id,
        EquipmentAccessUpdate(allowReporting=False,
                              restrictedEquipmentIds=[truck.id, truck.id]))

    assert record.allow_reporting is False
    assert record.allow_viewing is True
    assert record.restricted_equipment_ids == [str(truck.id)]


def test_partner_cannot_change_the_owner_rules(db, accepted, borel):
    with pytest.raises(ForbiddenError):
        lifecycle.update_access_rules(db, accepted.id, borel.id,
                                      EquipmentAccessUpdate(allowViewing=False))


# =============================================================================
# synchronize
# =============================================================================

def test_synchronize_repairs_a_half_accepted_pair(db, pending, borel, monkeypatch):
    mirror_id = _reverse(db, pending).id
    _fail_writes_to(monkeypatch, mirror_id)
    with pytest.raises(InconsistencyError):
        lifecycle.accept(db, pending.id, borel.id)
    monkeypatch.undo()

    # works from either side of the pair
    result = lifecycle.synchronize(db, mirror_id)

    assert result.repaired is True
    db.expire_all()
    forward = store.get_partnership(db, pending.id)
    mirror = store.get_partnership(db, mirror_id)
    assert forward.status == mirror.status == "accepted"
    assert mirror.accepted_at == forward.accepted_at


def test_synchronize_recreates_a_missing_reverse(db, accepted):
    db.delete(_reverse(db, accepted))
    db.commit()

    result = lifecycle.synchronize(db, accepted.id)

    assert result.repaired is True
    assert result.reverse.status == "accepted"
    assert result.reverse.initiator_id == accepted.partner_id


def test_synchronize_consistent_pair_is_a_no_op(db, accepted, acme):
    lifecycle.suspend(db, accepted.id, acme.id)

    result = lifecycle.synchronize(db, accepted.id)

    assert result.repaired is False
    assert _reverse(db, accepted).status == "accepted"


def test_activate_provisional_company(db, acme):
    record = _invite(db, acme, "Chronos Freight")

    company = company_directory.activate_provisional_company(db, record.partner_id)

    assert company.status == "active"
    assert company.is_provisional is False
    manager = db.query(Users).filter(Users.company_id == company.id).one()
    db.refresh(manager)
    assert manager.status == "active"
    assert manager.is_temporary is False


def test_synchronize_ignores_declined_history_of_an_earlier_invitation(db, acme, borel):
    first = _invite(db, acme, borel.name)
    lifecycle.decline(db, first.id, borel.id)
    second = _invite(db, acme, borel.name)
    db.delete(store.find_by_pair(db, borel.id, acme.id))
    db.commit()
    assert lifecycle.accept(db, second.id, borel.id).reverse_missing is True

    result = lifecycle.synchronize(db, second.id)

    assert result.repaired is True
    db.expire_all()
    assert store.get_partnership(db, second.id).status == "accepted"
    mirror = store.find_by_pair(db, borel.id, acme.id)
    assert mirror.status == "accepted"
    assert mirror.invitation_id == second.invitation_id
    assert store.get_partnership(db, first.id).status == "declined"
    assert store.find_reverse(db, first).status == "declined"


def test_synchronize_on_old_declined_pair_is_a_no_op(db, acme, borel):
    first = _invite(db, acme, borel.name)
    lifecycle.decline(db, first.id, borel.id)
    second = _invite(db, acme, borel.name)

    result = lifecycle.synchronize(db, first.id)

    assert result.repaired is False
    db.expire_all()
    assert store.get_partnership(db, second.id).status == "pending"


def test_both_records_of_an_invitation_share_its_id(db, pending):
    mirror = _reverse(db, pending)

    assert mirror.invitation_id == pending.invitation_id
    assert store.find_reverse(db, pending).id == mirror.id


# =============================================================================
# concurrency
# =============================================================================

def test_racing_accept_with_a_stale_copy_is_invalid_state(db, pending, borel):
    other = SessionLocal()
    try:
        stale = store.get_partnership(other, pending.id)
        assert stale.status == "pending"

        lifecycle.accept(db, pending.id, borel.id)

        # the other session still sees "pending" and loses on the version check
        with pytest.raises(InvalidStateError) as exc:
            lifecycle.accept(other, pending.id, borel.id)
        assert "modified by another request" in exc.value.message
    finally:
        other.close()

    db.expire_all()
    record = store.get_partnership(db, pending.id)
    assert record.status == "accepted"
    assert record.version == 2
    assert _reverse(db, record).version == 2


def test_reverse_write_takes_the_pair_lock_again(db, pending, borel, monkeypatch):
    events = []
    original_lock = store.lock_pair
    original_update = store.update

    def lock_pair(db, company_a, company_b):
        events.append("lock")
        return original_lock(db, company_a, company_b)

    def update(db, partnership_id, patch):
        events.append("update")
        return original_update(db, partnership_id, patch)

    monkeypatch.setattr(store, "lock_pair", lock_pair)
    monkeypatch.setattr(store, "update", update)

    lifecycle.accept(db, pending.id, borel.id)

    assert events == ["lock", "update", "lock", "update"]
