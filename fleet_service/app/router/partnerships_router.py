# app/router/partnerships_router.py
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from shared.core.auth import (allow_admin, allow_manager, require_company,
                              validate_current_token)
from shared.core.database import get_db
from shared.core.schemas import UserToken
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode

from ..crud.partnerships import equipment_access
from ..crud.partnerships import partnership_lifecycle as lifecycle
from ..crud.partnerships import partnerships_crud as crud
from ..schemas.partnerships_schemas import (EquipmentAccessUpdate,
                                            PartnershipInvite, PartnershipOut,
                                            PartnershipRequest)

router = APIRouter(
    prefix="/api/partnerships",
    tags=["partnerships"],
    dependencies=[Depends(validate_current_token)],
)


def _transition_message(action: str, result: lifecycle.TransitionResult) -> str:
    if result.reverse_missing:
        return f"Partnership {action}, reverse partnership record is missing"
    return f"Partnership {action} successfully"


# ----------------- List -----------------
@router.get("")
def list_partnerships(
    params: PartnershipRequest = Depends(),
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(require_company)
):
    return success_response(
        data=crud.get_partnerships(db, current_user.company_id, params),
        message="Partnerships retrieved successfully"
    )


# ----------------- Invite -----------------
@router.post("/invite", status_code=status.HTTP_201_CREATED)
def invite_partner(
    payload: PartnershipInvite,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_manager)
):
    record = lifecycle.invite(db, current_user.company_id, payload)
    return success_response(
        data=PartnershipOut.from_record(record),
        message="Partnership invitation sent successfully",
        status_code=AppStatusCode.CREATED_SUCCESSFULLY
    )


# ----------------- Equipment visible through partnerships -----------------
@router.get("/equipment")
def partner_equipment(
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(require_company)
):
    return success_response(
        data=equipment_access.visible_equipment(db, current_user.company_id),
        message="Partner equipment retrieved successfully"
    )


# ----------------- Stats -----------------
@router.get("/stats")
def partnership_stats(
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(require_company)
):
    return success_response(
        data=crud.get_partnership_stats(db, current_user.company_id),
        message="Partnership stats retrieved successfully"
    )


# ----------------- Single record -----------------
@router.get("/{partnership_id}")
def get_partnership(
    partnership_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(require_company)
):
    return success_response(
        data=crud.get_partnership_for_company(
            db, partnership_id, current_user.company_id),
        message="Partnership retrieved successfully"
    )


# ----------------- Accept / Decline -----------------
@router.put("/{partnership_id}/accept")
def accept_partnership(
    partnership_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_manager)
):
    result = lifecycle.accept(db, partnership_id, current_user.company_id)
    return success_response(
        data=PartnershipOut.from_record(result.partnership),
        message=_transition_message("accepted", result),
        status_code=AppStatusCode.OPERATION_SUCCESSFUL
    )


@router.put("/{partnership_id}/decline")
def decline_partnership(
    partnership_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_manager)
):
    result = lifecycle.decline(db, partnership_id, current_user.company_id)
    return success_response(
        data=PartnershipOut.from_record(result.partnership),
        message=_transition_message("declined", result),
        status_code=AppStatusCode.OPERATION_SUCCESSFUL
    )


# ----------------- Owner side changes -----------------
@router.put("/{partnership_id}/suspend")
def suspend_partnership(
    partnership_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_manager)
):
    record = lifecycle.suspend(db, partnership_id, current_user.company_id)
    return success_response(
        data=PartnershipOut.from_record(record),
        message="Partnership suspended successfully",
        status_code=AppStatusCode.OPERATION_SUCCESSFUL
    )


@router.put("/{partnership_id}/resume")
def resume_partnership(
    partnership_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_manager)
):
    record = lifecycle.resume(db, partnership_id, current_user.company_id)
    return success_response(
        data=PartnershipOut.from_record(record),
        message="Partnership resumed successfully",
        status_code=AppStatusCode.OPERATION_SUCCESSFUL
    )


@router.put("/{partnership_id}/access")
def update_equipment_access(
    partnership_id: UUID,
    changes: EquipmentAccessUpdate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_manager)
):
    record = lifecycle.update_access_rules(
        db, partnership_id, current_user.company_id, changes)
    return success_response(
        data=PartnershipOut.from_record(record),
        message="Equipment access updated successfully",
        status_code=AppStatusCode.OPERATION_SUCCESSFUL
    )


# ----------------- Operator repair -----------------
@router.put("/{partnership_id}/sync")
def synchronize_partnership(
    partnership_id: UUID,
    db: Session = Depends(get_db),
    _: UserToken = Depends(allow_admin)
):
    result = lifecycle.synchronize(db, partnership_id)
    return success_response(
        data={
            "partnership": PartnershipOut.from_record(result.partnership),
            "reverse": (PartnershipOut.from_record(result.reverse)
                        if result.reverse else None),
            "repaired": result.repaired,
        },
        message=("Partnership pair repaired" if result.repaired
                 else "Partnership pair already consistent"),
        status_code=AppStatusCode.OPERATION_SUCCESSFUL
    )
