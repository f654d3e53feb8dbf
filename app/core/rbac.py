from __future__ import annotations

from typing import Any, Set

from fastapi import HTTPException, status


def _code(x: Any) -> str:
    """Permission code from a plain string or a Permission row."""
    if x is None:
        return ""
    if isinstance(x, str):
        return x
    return str(getattr(x, "code", "") or "")


def is_admin_user(user: Any) -> bool:
    """
    Admins bypass every permission check.
    """
    if not user:
        return False
    return bool(getattr(user, "is_admin", False))


def iter_user_perm_codes(user: Any) -> Set[str]:
    """
    Collect permission codes from user.roles[*].permissions.
    """
    out: Set[str] = set()
    if not user:
        return out

    roles = getattr(user, "roles", None) or []
    for r in roles:
        perms = getattr(r, "permissions", None)
        if not perms:
            continue
        for p in perms:
            c = _code(p).strip()
            if c:
                out.add(c)

    return out


def has_perm(user: Any, code: Any) -> bool:
    if is_admin_user(user):
        return True

    want = _code(code).strip()
    if not want:
        return False

    return want in iter_user_perm_codes(user)


def require_perm(user: Any, code: Any) -> None:
    if not has_perm(user, code):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Forbidden: missing {_code(code)}",
        )


def require_admin(user: Any) -> None:
    if not is_admin_user(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: admin only",
        )
