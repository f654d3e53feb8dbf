# app/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """All tables (users, patients, lots, withdrawals, etc.) inherit from this."""
    pass


# Import all models so metadata is complete for create_all()
from app.models import (  # noqa: F401,E402
    user,
    role,
    permission,
    password_reset,
    patient,
    medication,
    lot,
    withdrawal,
    solicitation,
    pickup,
)
