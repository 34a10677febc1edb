"""
Activity log endpoints.

Contracts:
    - GET /activities: Audit trail with filters (staff)
    - GET /activities/my: Own activity
"""

from uuid import UUID

from fastapi import APIRouter, Query

from lms.core.deps import CurrentUser, DbSession, StaffUser
from lms.models.enums import ActivityType
from lms.schemas.activity import ActivityRead
from lms.schemas.base import PaginatedResponse
from lms.services.activity import ActivityService

router = APIRouter(prefix="/activities", tags=["Activities"])


@router.get(
    "",
    response_model=PaginatedResponse[ActivityRead],
    summary="Audit trail",
    description="Newest first. **Requires LIBRARIAN or ADMIN.**",
)
async def list_activities(
    db: DbSession,
    staff: StaffUser,
    user_id: UUID | None = Query(None),
    action: ActivityType | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
) -> PaginatedResponse[ActivityRead]:
    service = ActivityService(db)
    activities, total = await service.list_activities(
        user_id=user_id,
        action=action,
        page=page,
        page_size=page_size,
    )
    return PaginatedResponse.create(
        items=[ActivityRead.model_validate(a) for a in activities],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get(
    "/my",
    response_model=PaginatedResponse[ActivityRead],
    summary="My activity",
)
async def my_activities(
    db: DbSession,
    current_user: CurrentUser,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
) -> PaginatedResponse[ActivityRead]:
    service = ActivityService(db)
    activities, total = await service.list_activities(
        user_id=current_user.id,
        page=page,
        page_size=page_size,
    )
    return PaginatedResponse.create(
        items=[ActivityRead.model_validate(a) for a in activities],
        total=total,
        page=page,
        page_size=page_size,
    )
