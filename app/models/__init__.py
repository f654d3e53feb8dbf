# app/models/__init__.py
from .user import User, UserRole
from .role import Role, RolePermission
from .permission import Permission
from .password_reset import PasswordResetToken
from .patient import Patient
from .medication import Medication, PharmaceuticalForm, MedicationType
from .lot import Lot
from .withdrawal import Withdrawal
from .solicitation import Solicitation, SolicitationStatus
from .pickup import Shift, PickupSchedule

__all__ = [
    "User",
    "UserRole",
    "Role",
    "RolePermission",
    "Permission",
    "PasswordResetToken",
    "Patient",
    "Medication",
    "PharmaceuticalForm",
    "MedicationType",
    "Lot",
    "Withdrawal",
    "Solicitation",
    "SolicitationStatus",
    "Shift",
    "PickupSchedule",
]
