# app/router/companies_router.py
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.auth import allow_admin, validate_current_token
from shared.core.database import get_db
from shared.core.schemas import UserToken
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode

from ..crud.directory import company_directory
from ..schemas.companies_schemas import CompanyOut

router = APIRouter(
    prefix="/api/companies",
    tags=["companies"],
    dependencies=[Depends(validate_current_token)],
)


# ----------------- Activate a company provisioned by an invitation -----------------
@router.put("/{company_id}/activate")
def activate_company(
    company_id: UUID,
    db: Session = Depends(get_db),
    _: UserToken = Depends(allow_admin)
):
    company = company_directory.activate_provisional_company(db, company_id)
    return success_response(
        data=CompanyOut.model_validate(company),
        message="Company activated successfully",
        status_code=AppStatusCode.OPERATION_SUCCESSFUL
    )
