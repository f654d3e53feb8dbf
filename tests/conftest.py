"""
Pytest configuration and shared fixtures.

The environment is pointed at an in-memory SQLite database and a temporary
upload folder before anything from `app` is imported, because settings are
read once at import time.
"""
import os
import tempfile
from datetime import timedelta

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "test-secret-key"
os.environ["STORAGE_DIR"] = tempfile.mkdtemp(prefix="lrm-uploads-")
os.environ["FRONTEND_URL"] = "http://frontend.test"
os.environ.setdefault("ADMIN_EMAIL", "")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.core.security import hash_password  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.init_db import seed_permissions  # noqa: E402
from app.db.session import engine, SessionLocal  # noqa: E402
from app.main import app as fastapi_app  # noqa: E402
from app.models import (  # noqa: E402
    Lot,
    Medication,
    MedicationType,
    Patient,
    Permission,
    PharmaceuticalForm,
    Role,
    Shift,
    User,
)
from app.utils.jwt import create_access_token  # noqa: E402
from app.utils.timezone import today_local  # noqa: E402

PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
    b"\x08\x06\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f"
    b"\x00\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)


@pytest.fixture(autouse=True)
def schema():
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(schema):
    session = SessionLocal()
    seed_permissions(session)
    session.commit()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def client(db):
    return TestClient(fastapi_app)


# -------------------------
# Factories
# -------------------------
class Factory:
    def __init__(self, session):
        self.db = session
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def user(self, *, is_admin=False, perms=(), email=None, password="secret123", is_active=True) -> User:
        n = self._next()
        u = User(
            name=f"User {n}",
            email=email or f"user{n}@example.com",
            password_hash=hash_password(password),
            is_admin=is_admin,
            is_active=is_active,
        )
        if perms:
            role = Role(name=f"role-{n}", description="test role")
            role.permissions = self.db.query(Permission).filter(Permission.code.in_(list(perms))).all()
            u.roles = [role]
        self.db.add(u)
        self.db.commit()
        return u

    def patient(self, **kw) -> Patient:
        n = self._next()
        p = Patient(
            name=kw.get("name", f"Patient {n}"),
            cpf=kw.get("cpf", f"{n:011d}"),
            birth_date=kw.get("birth_date", today_local() - timedelta(days=365 * 30)),
            phone=kw.get("phone", "62999990000"),
            sus_card=kw.get("sus_card", f"SUS{n:06d}"),
        )
        self.db.add(p)
        self.db.commit()
        return p

    def catalog(self):
        med = Medication(description="Dipyrone 500mg", active_ingredient="Dipyrone")
        form = PharmaceuticalForm(description="Tablet")
        mtype = MedicationType(description="Generic")
        self.db.add_all([med, form, mtype])
        self.db.commit()
        return med, form, mtype

    def lot(self, *, quantity=10, expiry_in_days=1, batch_number=None) -> Lot:
        med, form, mtype = self.catalog()
        expiry = today_local() + timedelta(days=expiry_in_days)
        lot = Lot(
            batch_number=batch_number or f"B{self._next():04d}",
            manufacture_date=expiry - timedelta(days=730),
            expiry_date=expiry,
            quantity=quantity,
            medication_id=med.id,
            form_id=form.id,
            type_id=mtype.id,
        )
        self.db.add(lot)
        self.db.commit()
        return lot

    def shift(self, description="Morning") -> Shift:
        s = Shift(description=description)
        self.db.add(s)
        self.db.commit()
        return s


@pytest.fixture
def make(db):
    return Factory(db)


def auth_header(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}


@pytest.fixture
def admin(make):
    return make.user(is_admin=True, email="admin@example.com")


@pytest.fixture
def admin_headers(admin):
    return auth_header(admin)


@pytest.fixture
def staff(make):
    return make.user(
        email="staff@example.com",
        perms=[
            "patients.view",
            "lots.view",
            "withdrawals.view",
            "withdrawals.create",
            "solicitations.view",
            "solicitations.create",
        ],
    )


@pytest.fixture
def staff_headers(staff):
    return auth_header(staff)
