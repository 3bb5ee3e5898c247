from datetime import datetime, timedelta, timezone
from uuid import UUID
from fastapi import status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from shared.models.users import Users
from shared.utils.app_status_code import AppStatusCode
from shared.utils.enums import UserRole, UserStatus
from shared.core.config import settings
from shared.helpers.json_response_helper import error_response
from shared.core.schemas import UserToken
from shared.core.database import get_db

security = HTTPBearer()

BEARER_HEADERS = {"WWW-Authenticate": "Bearer"}


def create_access_token(data: dict, expires_minutes: int = None):
    payload = data.copy()
    expires = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.JWT_EXPIRE_MINUTES)
    payload['exp'] = expires

    # company_id / user_id are UUIDs in the database
    for key in ("user_id", "company_id"):
        if payload.get(key) is not None:
            payload[key] = str(payload[key])

    return jwt.encode(payload, settings.JWT_SECRET,
                      algorithm=settings.JWT_ALGORITHM)


def create_user_token(user: Users):
    return create_access_token({
        "user_id": user.id,
        "company_id": user.company_id,
        "name": user.full_name,
        "role": user.role,
    })


def verify_token(token: str) -> UserToken:
    """Verify and decode a JWT token."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET,
                             algorithms=[settings.JWT_ALGORITHM])
        return UserToken(**payload)
    except ExpiredSignatureError:
        return error_response(
            message="Invalid or expired token",
            status_code=str(AppStatusCode.AUTHENTICATION_TOKEN_EXPIRED),
            http_status=status.HTTP_401_UNAUTHORIZED,
            headers=BEARER_HEADERS
        )
    except (JWTError, PydanticValidationError):
        return error_response(
            message="Invalid token structure",
            status_code=str(AppStatusCode.AUTHENTICATION_TOKEN_INVALID),
            http_status=status.HTTP_401_UNAUTHORIZED,
            headers=BEARER_HEADERS
        )


def validate_current_token(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
):
    token = credentials.credentials
    # decoded token -> contains user_id, company_id and role
    user_data = verify_token(token)

    try:
        user_id = UUID(user_data.user_id)
    except ValueError:
        return error_response(
            message="Invalid token structure",
            status_code=str(AppStatusCode.AUTHENTICATION_TOKEN_INVALID),
            http_status=status.HTTP_401_UNAUTHORIZED,
            headers=BEARER_HEADERS
        )

    # Fetch the user from the database
    user = db.query(Users).filter(Users.id == user_id).first()

    if not user:
        return error_response(
            message="User not found",
            status_code=str(AppStatusCode.AUTHENTICATION_USER_INVALID),
            http_status=status.HTTP_401_UNAUTHORIZED
        )

    if user.status.lower() != UserStatus.ACTIVE.value:
        return error_response(
            message="User is not active. Access denied",
            status_code=str(AppStatusCode.AUTHENTICATION_USER_INACTIVE),
            http_status=status.HTTP_403_FORBIDDEN
        )

    # role and company always come from the database, not the token
    user_data.status = user.status
    user_data.role = user.role
    user_data.company_id = user.company_id
    return user_data


def require_company(current_user: UserToken = Depends(validate_current_token)):
    if not current_user.company_id:
        return error_response(
            message="User must be associated with a company",
            status_code=str(AppStatusCode.REQUIRED_VALIDATION_ERROR),
            http_status=status.HTTP_400_BAD_REQUEST
        )
    return current_user


def require_roles(*roles: UserRole):
    allowed = {role.value for role in roles}

    def checker(current_user: UserToken = Depends(require_company)):
        if current_user.role.lower() not in allowed:
            return error_response(
                message=f"Insufficient permissions: requires one of {sorted(allowed)}",
                status_code=str(AppStatusCode.AUTHENTICATION_UNAUTHORIZED_ACCESS),
                http_status=status.HTTP_403_FORBIDDEN
            )
        return current_user

    return checker


allow_manager = require_roles(UserRole.MANAGER, UserRole.ADMIN)
allow_admin = require_roles(UserRole.ADMIN)
