"""Admin endpoints: user directory and account statistics."""

from typing import Annotated, Optional

from fastapi import APIRouter, Query, status

from ...schemas import (
    MessageResponse, UserCreate, UserMutationResponse, UserPage, UserStats, UserSummary, UserUpdate
)
from ..dependencies import CurrentActor, Users

router = APIRouter()


@router.get("/users", response_model=UserPage)
def list_users(
    actor: CurrentActor,
    users: Users,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
    search: Optional[str] = None,
    role: Annotated[Optional[str], Query(alias="userType")] = None,
    is_active: Annotated[Optional[bool], Query(alias="isActive")] = None,
    sort_by: Annotated[str, Query(alias="sortBy")] = "createdAt",
    sort_order: Annotated[str, Query(alias="sortOrder")] = "desc",
):
    """Paginated user list.

    Filters: ``search`` (name, email or company), ``userType``, ``isActive``.
    Sort with ``sortBy`` (createdAt, name, email) and ``sortOrder`` (asc, desc).
    """

    rows, pagination = users.list_users(
        actor,
        search=search,
        role=role,
        is_active=is_active,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return UserPage(users=[UserSummary.model_validate(row) for row in rows], pagination=pagination)


@router.post("/users", response_model=UserMutationResponse, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, actor: CurrentActor, users: Users):
    """Create an account."""

    user = users.create_user(actor, payload)
    return UserMutationResponse(message="User created successfully", user=UserSummary.model_validate(user))


@router.patch("/users/{user_id}", response_model=UserMutationResponse)
def update_user(user_id: str, patch: UserUpdate, actor: CurrentActor, users: Users):
    """Update the fields present in the body."""

    user = users.update_user(actor, user_id, patch)
    return UserMutationResponse(message="User updated successfully", user=UserSummary.model_validate(user))


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(user_id: str, actor: CurrentActor, users: Users):
    """Delete a non-admin account."""

    users.delete_user(actor, user_id)
    return MessageResponse(message="User deleted successfully")


@router.get("/stats", response_model=UserStats)
def get_stats(actor: CurrentActor, users: Users):
    """Account totals, sign-ups in the last 30 days and users per role."""

    return users.get_stats(actor)
