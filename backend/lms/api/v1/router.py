"""
API v1 router.

Includes every endpoint router.
"""

from fastapi import APIRouter

from lms.api.v1.activities import router as activities_router
from lms.api.v1.auth import router as auth_router
from lms.api.v1.fines import router as fines_router
from lms.api.v1.items import categories_router, router as items_router
from lms.api.v1.loans import router as loans_router
from lms.api.v1.reservations import router as reservations_router
from lms.api.v1.system import router as system_router
from lms.api.v1.users import router as users_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(auth_router)
api_router.include_router(users_router)
api_router.include_router(items_router)
api_router.include_router(categories_router)
api_router.include_router(loans_router)
api_router.include_router(reservations_router)
api_router.include_router(fines_router)
api_router.include_router(activities_router)
api_router.include_router(system_router)
