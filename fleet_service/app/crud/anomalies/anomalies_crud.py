# app/crud/anomalies/anomalies_crud.py
import logging
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shared.core.config import settings
from shared.core.exceptions import ValidationError
from shared.core.schemas import UserToken
from ...enum.anomaly_enum import AnomalyStatus
from ...models.anomalies import Anomaly
from ...schemas.anomalies_schemas import AnomalyOut, PartnerAnomalyCreate
from ..partnerships import equipment_access

logger = logging.getLogger(__name__)


def report_partner_anomaly(db: Session, current_user: UserToken,
                           payload: PartnerAnomalyCreate) -> AnomalyOut:
    """Record an anomaly on equipment owned by a partner company.

    The anomaly and the partnership report counters are committed together.
    """
    minimum = settings.MIN_PARTNER_ANOMALY_PHOTOS
    if len(payload.photos) < minimum:
        raise ValidationError(f"Minimum {minimum} photos required",
                              details={"photos": len(payload.photos),
                                       "minimum": minimum})

    grant = equipment_access.authorize_report(
        db,
        reporting_company_id=current_user.company_id,
        equipment_id=payload.equipment_id,
        partnership_id=payload.partnership_id,
        commit=False,
    )

    anomaly = Anomaly(
        equipment_id=grant.equipment.id,
        reported_by_id=UUID(current_user.user_id),
        title=payload.title.strip(),
        description=payload.description,
        criticality=payload.criticality.value,
        immobilization_status=payload.immobilization_status.value,
        photos=[p.model_dump(mode="json") for p in payload.photos],
        location=payload.location,
        status=AnomalyStatus.reported.value,
        reported_via_partnership=True,
        partner_company_id=current_user.company_id,
        partnership_id=grant.partnership.id,
    )
    db.add(anomaly)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(anomaly)

    logger.info("Anomaly %s reported by company %s on equipment %s of company %s "
                "via partnership %s", anomaly.id, current_user.company_id,
                grant.equipment.id, grant.owner_company_id, grant.partnership.id)
    return AnomalyOut.model_validate(anomaly)
