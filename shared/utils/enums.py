from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    DRIVER = "driver"
    WORKSHOP = "workshop"


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    # provisional accounts created while inviting an unknown company
    PENDING_ACTIVATION = "pending_activation"
