# app/crud/equipment/equipment_registry.py
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models.equipment import Equipment


def _to_uuid(value) -> Optional[UUID]:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


def get_equipment(db: Session, equipment_id) -> Optional[Equipment]:
    equipment_uuid = _to_uuid(equipment_id)
    if equipment_uuid is None:
        return None
    return (
        db.query(Equipment)
        .filter(Equipment.id == equipment_uuid, Equipment.is_deleted == False)
        .first()
    )


def _company_equipment_query(db: Session, company_id: UUID,
                             exclude_ids: Iterable = ()):
    query = db.query(Equipment).filter(
        Equipment.company_id == company_id,
        Equipment.is_deleted == False
    )
    excluded = [u for u in (_to_uuid(i) for i in exclude_ids) if u]
    if excluded:
        query = query.filter(Equipment.id.notin_(excluded))
    return query


def list_company_equipment(db: Session, company_id: UUID,
                           exclude_ids: Iterable = ()) -> List[Equipment]:
    return (
        _company_equipment_query(db, company_id, exclude_ids)
        .order_by(Equipment.billun_id.asc())
        .all()
    )


def count_company_equipment(db: Session, company_id: UUID,
                            exclude_ids: Iterable = ()) -> int:
    return (
        _company_equipment_query(db, company_id, exclude_ids)
        .with_entities(func.count(Equipment.id))
        .scalar()
    ) or 0
