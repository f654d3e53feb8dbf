# app/api/router.py
from fastapi import APIRouter

from app.api import (
    # Core
    routes_auth,
    routes_users,
    routes_roles,
    routes_permissions,

    # Registry
    routes_patients,
    routes_medications,
    routes_lots,

    # Stock movements
    routes_withdrawals,
    routes_solicitations,

    # Citizen pickups
    routes_pickups,
)

api_router = APIRouter()

api_router.include_router(routes_auth.router)
api_router.include_router(routes_users.router)
api_router.include_router(routes_roles.router)
api_router.include_router(routes_permissions.router)

api_router.include_router(routes_patients.router)
api_router.include_router(routes_medications.router)
api_router.include_router(routes_lots.router)

api_router.include_router(routes_withdrawals.router)
api_router.include_router(routes_solicitations.router)

api_router.include_router(routes_pickups.router)
