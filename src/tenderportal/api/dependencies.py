"""Request-scoped dependencies: session, storage, caller identity and services."""

from typing import Annotated, Optional

from fastapi import Depends, UploadFile
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..logging import bind_request_context, get_logger
from ..models import User
from ..permissions import require_actor
from ..schemas import Actor
from ..security import create_access_token, decode_access_token
from ..services import AccountService, TenderApplicationService, TenderService, UserDirectoryService
from ..storage import SpacesClient, get_storage_client

logger = get_logger(__name__)

# auto_error off: anonymous callers reach public routes
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def issue_token(user: User) -> str:
    """Access token carrying the user's id, role and email."""
    return create_access_token({"sub": user.id, "role": user.role, "email": user.email})


async def get_current_actor(token: Annotated[Optional[str], Depends(oauth2_scheme)]) -> Optional[Actor]:
    """Get the acting user from the bearer token.

    Missing, expired or tampered tokens yield ``None``; services decide whether that is allowed.
    """

    if not token:
        return None

    payload = decode_access_token(token)
    if payload is None:
        return None

    user_id = payload.get("sub")
    role = payload.get("role")
    if not user_id or not role:
        logger.warning("JWT token without subject or role")
        return None

    bind_request_context(actor_id=user_id)
    return Actor(id=user_id, role=role, email=payload.get("email"))


async def get_authenticated_actor(
    actor: Annotated[Optional[Actor], Depends(get_current_actor)]
) -> Actor:
    """Require authentication (401 if there is no valid token)."""
    return require_actor(actor)


def get_storage() -> SpacesClient:
    return get_storage_client()


async def read_upload(file: Optional[UploadFile]) -> Optional[bytes]:
    """Body of an uploaded file, read at most one byte past the size limit.

    An oversized file is never held in memory whole; the truncated body
    still fails the size check in ``validate_file``.
    """
    if file is None:
        return None
    limit = settings.upload.max_file_size_mb * 1024 * 1024
    if file.size is not None and file.size > limit:
        logger.warning("Oversized upload truncated", filename=file.filename, size=file.size)
    return await file.read(limit + 1)


DatabaseSession = Annotated[Session, Depends(get_db)]
Storage = Annotated[SpacesClient, Depends(get_storage)]
CurrentActor = Annotated[Optional[Actor], Depends(get_current_actor)]
AuthenticatedActor = Annotated[Actor, Depends(get_authenticated_actor)]


def get_account_service(db: DatabaseSession) -> AccountService:
    return AccountService(db)


def get_application_service(db: DatabaseSession) -> TenderApplicationService:
    return TenderApplicationService(db)


def get_user_service(db: DatabaseSession) -> UserDirectoryService:
    return UserDirectoryService(db)


def get_tender_service(db: DatabaseSession) -> TenderService:
    """Tender service without object storage, for catalogue routes."""
    return TenderService(db)


def get_upload_service(db: DatabaseSession, storage: Storage) -> TenderService:
    return TenderService(db, storage)


Accounts = Annotated[AccountService, Depends(get_account_service)]
Applications = Annotated[TenderApplicationService, Depends(get_application_service)]
Users = Annotated[UserDirectoryService, Depends(get_user_service)]
Tenders = Annotated[TenderService, Depends(get_tender_service)]
TenderUploads = Annotated[TenderService, Depends(get_upload_service)]
