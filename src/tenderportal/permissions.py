"""Role-based permission rules.

Pure predicates over roles and ownership, plus two helpers that turn a failed
check into the matching domain error. Checks always run before any write.
"""

from typing import Optional

from .models import Role
from .exceptions import ForbiddenError, UnauthenticatedError

TENDER_MANAGER_ROLES = {Role.ADMIN.value, Role.GOVERNMENT_OFFICIAL.value}


def _role_value(role) -> Optional[str]:
    parsed = Role.parse(role)
    return parsed.value if parsed else None


def can_create_tender(role) -> bool:
    """Admins and government officials publish and edit tenders."""
    return _role_value(role) in TENDER_MANAGER_ROLES


def can_upload_document(role) -> bool:
    """Admins and government officials attach bid documents and reports."""
    return _role_value(role) in TENDER_MANAGER_ROLES


def can_delete_user(target_role) -> bool:
    """Admin accounts are never deletable, whoever asks."""
    return _role_value(target_role) != Role.ADMIN.value


def can_manage_users(role) -> bool:
    return _role_value(role) == Role.ADMIN.value


def owns(actor, user_id: Optional[str]) -> bool:
    """True if the resource owned by ``user_id`` belongs to ``actor``."""
    return actor is not None and user_id is not None and actor.id == user_id


def require_actor(actor):
    """Return ``actor`` or raise UnauthenticatedError when there is none."""
    if actor is None:
        raise UnauthenticatedError("Unauthorized")
    return actor


def authorize(allowed: bool, message: str = "Insufficient permissions") -> None:
    """Raise ForbiddenError unless ``allowed``."""
    if not allowed:
        raise ForbiddenError(message)
