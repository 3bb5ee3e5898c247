from datetime import datetime
from typing import Optional
from uuid import UUID

from shared.core.schemas import CamelModel
from ..enum.partnership_enum import CompanyStatus


class CompanyOut(CamelModel):
    id: UUID
    name: str
    siret: Optional[str] = None
    status: CompanyStatus
    is_provisional: bool
    main_manager_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
