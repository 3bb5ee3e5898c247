from enum import Enum


class PartnershipStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    declined = "declined"
    suspended = "suspended"


class CompanyStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    pending_partnership = "pending_partnership"
