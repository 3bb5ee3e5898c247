from enum import Enum


class EquipmentType(str, Enum):
    vehicle = "vehicle"
    trailer = "trailer"
    handling = "handling"


class EquipmentStatus(str, Enum):
    available = "available"
    maintenance = "maintenance"
    unavailable = "unavailable"
