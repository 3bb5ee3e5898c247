# Import all models to ensure they are registered with SQLAlchemy
from shared.models.users import Users
from .companies import Company
from .equipment import Equipment
from .partnerships import Partnership, EquipmentAccessRules
from .anomalies import Anomaly
