from enum import Enum


class AnomalyCriticality(str, Enum):
    ok = "ok"
    minor = "minor"
    important = "important"
    critical = "critical"


class ImmobilizationStatus(str, Enum):
    mobile = "mobile"
    immobilized = "immobilized"
    limited_use = "limited_use"


class AnomalyStatus(str, Enum):
    reported = "reported"
    in_analysis = "in_analysis"
    scheduled = "scheduled"
    in_progress = "in_progress"
    resolved = "resolved"
    closed = "closed"
