"""Self-service account endpoints."""

from fastapi import APIRouter

from ...schemas import MessageResponse, PasswordChange, ProfileUpdate, UserMutationResponse, UserSummary
from ..dependencies import CurrentActor, Users

router = APIRouter()


@router.patch("/profile", response_model=UserMutationResponse)
def update_profile(patch: ProfileUpdate, actor: CurrentActor, users: Users):
    user = users.update_own_profile(actor, patch)
    return UserMutationResponse(message="Profile updated successfully", user=UserSummary.model_validate(user))


@router.post("/change-password", response_model=MessageResponse)
def change_password(payload: PasswordChange, actor: CurrentActor, users: Users):
    users.change_own_password(actor, payload.current_password, payload.new_password)
    return MessageResponse(message="Password changed successfully")
