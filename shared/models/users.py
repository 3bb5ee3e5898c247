import uuid
from sqlalchemy import TIMESTAMP, Boolean, Column, ForeignKey, String, Uuid, func
from sqlalchemy.orm import relationship
from passlib.context import CryptContext

from shared.core.database import Base
from shared.utils.enums import UserRole, UserStatus

bcrypt_context = CryptContext(schemes=['bcrypt'], deprecated='auto')


class Users(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(Uuid(as_uuid=True), ForeignKey(
        "companies.id", ondelete="SET NULL"), nullable=True, index=True)

    username = Column(String(100), unique=True, index=True, nullable=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, default="")
    email = Column(String(200), unique=True, nullable=False)
    phone = Column(String(20), nullable=True)
    role = Column(String(16), nullable=False, default=UserRole.MANAGER.value)
    password = Column(String(255), nullable=False)
    status = Column(String(24), nullable=False,
                    default=UserStatus.ACTIVE.value)
    # placeholder accounts provisioned for invited companies
    is_temporary = Column(Boolean, default=False, nullable=False)
    last_login = Column(TIMESTAMP(timezone=True), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True),
                        server_default=func.now(), onupdate=func.now())

    company = relationship("Company", back_populates="users",
                           foreign_keys=[company_id])

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def set_password(self, password: str):
        self.password = bcrypt_context.hash(password)
