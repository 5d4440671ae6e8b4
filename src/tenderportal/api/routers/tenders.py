"""Tender catalogue endpoints."""

from typing import Annotated, List, Optional

from fastapi import APIRouter, File, Form, Query, UploadFile, status

from ...schemas import TenderCreate, TenderResponse, TenderUpdate
from ..dependencies import CurrentActor, Tenders, TenderUploads, read_upload

router = APIRouter()


@router.get("", response_model=List[TenderResponse])
def list_tenders(
    tenders: Tenders,
    status_filter: Annotated[Optional[str], Query(alias="status")] = None,
    search: Optional[str] = None,
):
    """List tenders, newest first."""

    return tenders.list_tenders(status=status_filter, search=search)


@router.get("/{tender_id}", response_model=TenderResponse)
def get_tender(tender_id: str, tenders: Tenders):
    """Get a tender by ID."""

    return tenders.get_tender(tender_id)


@router.post("", response_model=TenderResponse, status_code=status.HTTP_201_CREATED)
def create_tender(payload: TenderCreate, actor: CurrentActor, tenders: Tenders):
    """Publish a tender (admins and government officials)."""

    return tenders.create_tender(actor, payload)


@router.patch("/{tender_id}", response_model=TenderResponse)
def update_tender(tender_id: str, patch: TenderUpdate, actor: CurrentActor, tenders: Tenders):
    """Update the fields present in the body."""

    return tenders.update_tender(actor, tender_id, patch)


@router.post("/{tender_id}/documents", response_model=TenderResponse)
async def attach_document(
    tender_id: str,
    actor: CurrentActor,
    tenders: TenderUploads,
    file: Annotated[Optional[UploadFile], File()] = None,
    file_type: Annotated[str, Form(alias="fileType")] = "document",
):
    """Upload a bid document or bid report and link it to the tender."""

    data = await read_upload(file)

    return tenders.attach_document(
        actor,
        tender_id,
        file_type,
        file.filename if file is not None else None,
        file.content_type if file is not None else None,
        data,
    )
