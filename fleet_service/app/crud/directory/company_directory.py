# app/crud/directory/company_directory.py
"""Company Directory collaborator.

Lookups by id or name, and provisioning of placeholder companies for
invitations sent to companies that are not onboarded yet. Provisioning only
flushes: the caller's transaction decides whether the placeholder is kept.
"""
import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from shared.core.config import settings
from shared.core.exceptions import NotFoundError, ValidationError
from shared.helpers.password_generator import (generate_secure_password,
                                               generate_temporary_username)
from shared.models.users import Users
from shared.utils.enums import UserRole, UserStatus
from ...enum.partnership_enum import CompanyStatus
from ...models.companies import Company

logger = logging.getLogger(__name__)


@dataclass
class ProvisionedCompany:
    company: Company
    manager: Users


def get_company(db: Session, company_id: UUID) -> Optional[Company]:
    return db.query(Company).filter(Company.id == company_id).first()


def require_company(db: Session, company_id: UUID) -> Company:
    company = get_company(db, company_id)
    if not company:
        raise NotFoundError(f"Company '{company_id}' not found")
    return company


def find_company_by_name(db: Session, name: str) -> Optional[Company]:
    return (
        db.query(Company)
        .filter(func.lower(Company.name) == func.lower(name.strip()))
        .order_by(Company.created_at.asc())
        .first()
    )


def split_contact_name(contact_name: str):
    parts = contact_name.strip().split()
    if not parts:
        return contact_name, ""
    return parts[0], " ".join(parts[1:])


def provision_company(
    db: Session,
    name: str,
    contact_name: str,
    contact_email: str,
    contact_phone: Optional[str] = None,
    siret: Optional[str] = None,
) -> ProvisionedCompany:
    """Create a not-yet-activated company and its temporary manager account."""
    existing_user = db.query(Users).filter(
        func.lower(Users.email) == func.lower(contact_email)).first()
    if existing_user:
        raise ValidationError(
            f"Contact email '{contact_email}' already belongs to a registered user")

    first_name, last_name = split_contact_name(contact_name)

    manager = Users(
        username=generate_temporary_username(name),
        first_name=first_name,
        last_name=last_name,
        email=contact_email,
        phone=contact_phone,
        role=UserRole.MANAGER.value,
        status=UserStatus.PENDING_ACTIVATION.value,
        is_temporary=True,
    )
    # random until the auth service hands the contact a password of their own
    manager.set_password(generate_secure_password(
        settings.PROVISIONAL_PASSWORD_LENGTH))
    db.add(manager)
    db.flush()

    company = Company(
        name=name.strip(),
        siret=siret,
        status=CompanyStatus.pending_partnership.value,
        is_provisional=True,
        main_manager_id=manager.id,
    )
    db.add(company)
    db.flush()

    manager.company_id = company.id
    db.flush()

    logger.info("Provisioned placeholder company %s (%s) with temporary user %s",
                company.id, company.name, manager.username)
    return ProvisionedCompany(company=company, manager=manager)


def activate_provisional_company(db: Session, company_id: UUID) -> Company:
    company = require_company(db, company_id)
    if not company.is_provisional:
        return company

    company.status = CompanyStatus.active.value
    company.is_provisional = False
    (
        db.query(Users)
        .filter(Users.company_id == company.id, Users.is_temporary == True)
        .update({Users.status: UserStatus.ACTIVE.value,
                 Users.is_temporary: False}, synchronize_session=False)
    )
    db.commit()
    db.refresh(company)
    logger.info("Activated provisional company %s", company.id)
    return company
