from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from shared.core.schemas import CamelModel
from ..enum.anomaly_enum import (AnomalyCriticality, AnomalyStatus,
                                 ImmobilizationStatus)


class GeolocationIn(CamelModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timestamp: Optional[datetime] = None


class PhotoIn(CamelModel):
    url: str
    filename: Optional[str] = None
    geolocation: Optional[GeolocationIn] = None
    ai_enhanced: bool = False


class PartnerAnomalyCreate(CamelModel):
    equipment_id: UUID
    partnership_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    criticality: AnomalyCriticality = AnomalyCriticality.ok
    immobilization_status: ImmobilizationStatus = ImmobilizationStatus.mobile
    # the minimum photo count is a configurable business rule, checked in crud
    photos: List[PhotoIn] = Field(default_factory=list)
    location: Optional[str] = None


class AnomalyOut(CamelModel):
    id: UUID
    equipment_id: UUID
    reported_by_id: Optional[UUID] = None
    title: str
    description: str
    criticality: AnomalyCriticality
    immobilization_status: ImmobilizationStatus
    photos: List[PhotoIn] = []
    location: Optional[str] = None
    status: AnomalyStatus
    reported_via_partnership: bool
    partner_company_id: Optional[UUID] = None
    partnership_id: Optional[UUID] = None
    date_reported: Optional[datetime] = None
