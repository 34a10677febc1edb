"""
System endpoints.

Contracts:
    - GET /system/stats: Circulation dashboard counters (staff)

Status codes:
    - 200: Success
    - 401: Not authenticated
    - 403: Not staff
"""

from fastapi import APIRouter

from lms.core.deps import DbSession, StaffUser
from lms.schemas.system import LibraryStats
from lms.services.system import SystemService

router = APIRouter(prefix="/system", tags=["System"])


@router.get(
    "/stats",
    response_model=LibraryStats,
    summary="Library statistics",
    description="Items by status, open and overdue loans, pending reservations and fines. **Requires LIBRARIAN or ADMIN.**",
)
async def library_stats(
    db: DbSession,
    staff: StaffUser,
) -> LibraryStats:
    service = SystemService(db)
    return await service.get_stats()
