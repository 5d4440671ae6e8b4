"""File upload endpoint for tender documents and reports."""

from typing import Annotated, Optional

from fastapi import APIRouter, File, Form, UploadFile

from ...schemas import UploadResponse
from ..dependencies import CurrentActor, TenderUploads, read_upload

router = APIRouter()


@router.post("", response_model=UploadResponse)
async def upload_file(
    actor: CurrentActor,
    tenders: TenderUploads,
    file: Annotated[Optional[UploadFile], File()] = None,
    file_type: Annotated[Optional[str], Form(alias="fileType")] = None,
):
    """Upload a PDF or Word file to object storage.

    ``fileType`` is ``document`` or ``report`` and selects the folder.
    Admins and government officials only.
    """

    data = await read_upload(file)

    result = tenders.upload_document(
        actor,
        file_type,
        file.filename if file is not None else None,
        file.content_type if file is not None else None,
        data,
    )
    return UploadResponse(success=True, data=result)
