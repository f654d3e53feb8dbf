# app/services/rbac_helpers.py
from __future__ import annotations

import logging
from typing import Iterable, Set

from sqlalchemy.orm import Session
from sqlalchemy import func

from app.core.security import hash_password
from app.models.role import Role, RolePermission
from app.models.permission import Permission
from app.models.user import User

logger = logging.getLogger(__name__)

# -----------------------------
# Role names (canonical)
# -----------------------------
ROLE_ADMIN = "Admin"
ROLE_STAFF = "Staff"

# Staff run day-to-day dispensing; everything else stays with admins
STAFF_PERMS = [
    "patients.view", "patients.create", "patients.update",
    "medications.view", "pharmaceutical_forms.view", "medication_types.view",
    "lots.view", "lots.create", "lots.update",
    "withdrawals.view", "withdrawals.create", "withdrawals.update",
    "solicitations.view", "solicitations.approve", "solicitations.conclude",
    "solicitations.refuse",
    "pickups.view", "pickups.visit",
]


def _norm(s: str) -> str:
    return (s or "").strip().lower()


def _get_or_create_role(db: Session, name: str, desc: str = "") -> Role:
    role = db.query(Role).filter(func.lower(Role.name) == _norm(name)).first()
    if not role:
        role = Role(name=name.strip(), description=desc or "")
        db.add(role)
        db.flush()  # ensures role.id is available
    return role


def ensure_default_roles_exist(db: Session) -> dict[str, Role]:
    admin = _get_or_create_role(db, ROLE_ADMIN, "System administrator")
    staff = _get_or_create_role(db, ROLE_STAFF, "Pharmacy staff")
    return {ROLE_ADMIN: admin, ROLE_STAFF: staff}


def _role_permission_ids(db: Session, role_id: int) -> Set[int]:
    return {
        pid
        for (pid, ) in db.query(RolePermission.permission_id).filter(
            RolePermission.role_id == role_id).all()
    }


def _permission_ids_by_codes(db: Session, codes: Iterable[str]) -> Set[int]:
    wanted = {_norm(c) for c in codes if _norm(c)}
    if not wanted:
        return set()
    rows = db.query(Permission.id, Permission.code).all()
    # Compare in python to avoid DB collation issues across installs
    return {pid for (pid, code) in rows if _norm(code) in wanted}


def _attach(db: Session, role: Role, perm_ids: Set[int]) -> int:
    missing = perm_ids - _role_permission_ids(db, role.id)
    if missing:
        db.bulk_save_objects([
            RolePermission(role_id=role.id, permission_id=pid)
            for pid in sorted(missing)
        ])
    return len(missing)


def ensure_admin_has_all_permissions(db: Session) -> None:
    """
    Ensures the Admin role exists and contains ALL permissions.
    Safe to run multiple times. Does NOT commit.
    """
    roles = ensure_default_roles_exist(db)
    all_perm_ids = {pid for (pid, ) in db.query(Permission.id).all()}
    added = _attach(db, roles[ROLE_ADMIN], all_perm_ids)
    if added:
        logger.info("Admin role granted %s new permissions", added)


def ensure_staff_baseline(db: Session) -> None:
    """Only seeds Staff when it has no permissions yet, so edits made in the UI stick."""
    roles = ensure_default_roles_exist(db)
    staff = roles[ROLE_STAFF]
    if _role_permission_ids(db, staff.id):
        return
    _attach(db, staff, _permission_ids_by_codes(db, STAFF_PERMS))


def ensure_bootstrap_admin(db: Session, *, name: str, email: str, password: str) -> User | None:
    """
    Creates (or re-activates) the first admin account. Does NOT commit.
    Returns None when email/password are not configured.
    """
    email = _norm(email)
    if not email or not password:
        return None

    roles = ensure_default_roles_exist(db)
    u = db.query(User).filter(func.lower(User.email) == email).first()
    if not u:
        u = User(name=name or "Administrator", email=email, password_hash=hash_password(password))
        db.add(u)
        logger.info("bootstrap admin created email=%s", email)
    u.is_admin = True
    u.is_active = True
    if roles[ROLE_ADMIN] not in (u.roles or []):
        u.roles = list(u.roles or []) + [roles[ROLE_ADMIN]]
    db.flush()
    return u
