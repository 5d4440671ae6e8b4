"""Tender application endpoints for the signed-in user."""

from typing import List

from fastapi import APIRouter, status

from ...schemas import ApplicationCreate, ApplicationDetail, ApplicationResponse, MessageResponse
from ..dependencies import Applications, CurrentActor

router = APIRouter()


@router.get("", response_model=List[ApplicationDetail])
def list_applications(actor: CurrentActor, applications: Applications):
    """The caller's applications with their tenders, most recent first."""

    return applications.list_applications(actor)


@router.post("", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
def create_application(payload: ApplicationCreate, actor: CurrentActor, applications: Applications):
    """Apply to an open tender. One application per user and tender."""

    return applications.create_application(actor, payload.tender_id, payload.notes)


@router.delete("/{application_id}", response_model=MessageResponse)
def withdraw_application(application_id: str, actor: CurrentActor, applications: Applications):
    """Withdraw a pending application."""

    applications.withdraw_application(actor, application_id)
    return MessageResponse(message="Application deleted successfully")
