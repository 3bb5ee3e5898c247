# app/router/anomalies_router.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from shared.core.auth import require_company, validate_current_token
from shared.core.database import get_db
from shared.core.schemas import UserToken
from shared.helpers.json_response_helper import success_response
from shared.utils.app_status_code import AppStatusCode

from ..crud.anomalies import anomalies_crud as crud
from ..schemas.anomalies_schemas import PartnerAnomalyCreate

router = APIRouter(
    prefix="/api/anomalies",
    tags=["anomalies"],
    dependencies=[Depends(validate_current_token)],
)


@router.post("/partner", status_code=status.HTTP_201_CREATED)
def report_partner_anomaly(
    payload: PartnerAnomalyCreate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(require_company)
):
    return success_response(
        data=crud.report_partner_anomaly(db, current_user, payload),
        message="Partner anomaly reported successfully",
        status_code=AppStatusCode.CREATED_SUCCESSFULLY
    )
