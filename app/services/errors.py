# FILE: app/services/errors.py
from __future__ import annotations


class ServiceError(RuntimeError):
    """Base for business-rule failures; routes answer err(str(e), e.status_code)."""
    status_code = 400


class InvalidInput(ServiceError):
    status_code = 400


class NotFound(ServiceError):
    status_code = 404


class StateConflict(ServiceError):
    """Expired lot, insufficient stock, wrong status for the transition."""
    status_code = 409


class IntegrityConflict(ServiceError):
    """Row still referenced by withdrawals / solicitations."""
    status_code = 409
