"""Tender catalogue and tender documents."""

from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..exceptions import NotFoundError, ValidationError
from ..logging import get_logger
from ..models import Tender
from ..permissions import authorize, can_create_tender, can_upload_document, require_actor
from ..schemas import Actor, TenderCreate, TenderUpdate, UploadResult
from ..storage import DOCUMENT_FOLDERS, SpacesClient, validate_file
from ..utils.dates import utcnow

logger = get_logger(__name__)

# Tender columns holding the (name, key, url) triple for each document kind
DOCUMENT_COLUMNS = {
    "document": ("bid_document", "bid_document_s3_key", "bid_document_cdn_url"),
    "report": ("bid_report", "bid_report_s3_key", "bid_report_cdn_url"),
}


class TenderService:
    """Browse, publish and edit tenders; upload their documents."""

    def __init__(self, db: Session, storage: Optional[SpacesClient] = None) -> None:
        self._db = db
        self._storage = storage

    def list_tenders(self,
                     status: Optional[str] = None,
                     search: Optional[str] = None) -> List[Tender]:
        """All tenders, newest first, optionally filtered by status and title/reference."""

        query = self._db.query(Tender)

        if status:
            query = query.filter(func.lower(Tender.status) == status.strip().lower())

        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Tender.title.ilike(pattern), Tender.ref_number.ilike(pattern)))

        return query.order_by(Tender.created_at.desc()).all()

    def get_tender(self, tender_id: str) -> Tender:
        tender = self._db.query(Tender).filter(Tender.id == tender_id).first()
        if tender is None:
            raise NotFoundError("Tender not found")
        return tender

    def create_tender(self, actor: Optional[Actor], payload: TenderCreate) -> Tender:
        actor = require_actor(actor)
        authorize(can_create_tender(actor.role))

        tender = Tender(**payload.model_dump())
        self._db.add(tender)
        self._db.flush()

        logger.info(
            "Tender created",
            tender_id=tender.id,
            ref_number=tender.ref_number,
            status=tender.status,
            actor_id=actor.id,
        )
        return tender

    def update_tender(self, actor: Optional[Actor], tender_id: str, patch: TenderUpdate) -> Tender:
        """Apply the fields present in ``patch``. Title and status cannot be cleared."""
        actor = require_actor(actor)
        authorize(can_create_tender(actor.role))

        tender = self.get_tender(tender_id)
        changes = patch.model_dump(exclude_unset=True)

        for field, value in changes.items():
            if value is None and field in ("title", "status"):
                continue
            setattr(tender, field, value)
        tender.updated_at = utcnow()
        self._db.flush()

        logger.info("Tender updated", tender_id=tender.id, fields=sorted(changes), actor_id=actor.id)
        return tender

    def _upload(self,
                file_type: str,
                filename: str,
                content_type: Optional[str],
                data: Optional[bytes]) -> UploadResult:
        if data is None:
            raise ValidationError("No file provided")

        folder = DOCUMENT_FOLDERS.get(file_type)
        if folder is None:
            raise ValidationError('Invalid file type. Must be "document" or "report"')

        validate_file(len(data), content_type)

        if self._storage is None:
            raise RuntimeError("TenderService was created without a storage client")

        return self._storage.upload_file(data, folder, filename, content_type)

    def upload_document(self,
                        actor: Optional[Actor],
                        file_type: str,
                        filename: str,
                        content_type: Optional[str],
                        data: Optional[bytes]) -> UploadResult:
        """Store a tender document or report and return its key and public URL."""
        actor = require_actor(actor)
        authorize(can_upload_document(actor.role))

        result = self._upload(file_type, filename, content_type, data)

        logger.info(
            "Tender file uploaded",
            file_type=file_type,
            storage_key=result.storage_key,
            actor_id=actor.id,
        )
        return result

    def attach_document(self,
                        actor: Optional[Actor],
                        tender_id: str,
                        file_type: str,
                        filename: str,
                        content_type: Optional[str],
                        data: Optional[bytes]) -> Tender:
        """Upload a file and record it as the tender's bid document or bid report."""
        actor = require_actor(actor)
        authorize(can_upload_document(actor.role))

        tender = self.get_tender(tender_id)
        result = self._upload(file_type, filename, content_type, data)

        name_column, key_column, url_column = DOCUMENT_COLUMNS[file_type]
        setattr(tender, name_column, filename)
        setattr(tender, key_column, result.storage_key)
        setattr(tender, url_column, result.public_url)
        tender.updated_at = utcnow()
        self._db.flush()

        logger.info(
            "Document attached to tender",
            tender_id=tender.id,
            file_type=file_type,
            storage_key=result.storage_key,
            actor_id=actor.id,
        )
        return tender

