"""Admin user directory plus the two self-service account operations."""

import math
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ..logging import get_logger
from ..models import User
from ..permissions import authorize, can_delete_user, can_manage_users, require_actor
from ..schemas import (
    Actor, Pagination, ProfileUpdate, RoleCount, UserCreate, UserStats, UserUpdate
)
from ..security import get_password_hash, verify_password
from ..utils.dates import utcnow

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
NEW_SIGNUP_WINDOW_DAYS = 30
DUPLICATE_EMAIL = "User with this email already exists"

SORT_COLUMNS = {
    "created_at": User.created_at,
    "createdAt": User.created_at,
    "name": User.name,
    "email": User.email,
}

# None is never written to these columns by a partial update
NON_NULLABLE_FIELDS = {"email", "name", "role", "is_active"}


class UserDirectoryService:
    """Account management over the ``users`` table."""

    def __init__(self, db: Session) -> None:
        self._db = db

    # -- helpers ----------------------------------------------------------

    def _require_admin(self, actor: Optional[Actor]) -> Actor:
        actor = require_actor(actor)
        allowed = can_manage_users(actor.role)
        if not allowed:
            logger.warning("User management denied", actor_id=actor.id, actor_role=actor.role)
        authorize(allowed, "Unauthorized")
        return actor

    def _get_user(self, user_id: str) -> User:
        user = self._db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise NotFoundError("User not found")
        return user

    def _email_taken(self, email: str, exclude_id: Optional[str] = None) -> bool:
        query = self._db.query(User.id).filter(User.email == email)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    def _flush_or_conflict(self, **context) -> None:
        try:
            self._db.flush()
        except IntegrityError as e:
            self._db.rollback()
            logger.warning("Unique constraint rejected user write", error=str(e.orig), **context)
            raise ConflictError(DUPLICATE_EMAIL) from e

    @staticmethod
    def _apply_changes(user: User, changes: Dict[str, Any]) -> List[str]:
        applied = []
        for field, value in changes.items():
            if value is None and field in NON_NULLABLE_FIELDS:
                continue
            setattr(user, field, getattr(value, "value", value))
            applied.append(field)
        user.updated_at = utcnow()
        return applied

    # -- admin operations -------------------------------------------------

    def list_users(self,
                   actor: Optional[Actor],
                   search: Optional[str] = None,
                   role: Optional[str] = None,
                   is_active: Optional[bool] = None,
                   sort_by: str = "created_at",
                   sort_order: str = "desc",
                   page: int = 1,
                   limit: int = DEFAULT_PAGE_SIZE) -> Tuple[List[User], Pagination]:
        """Filtered, sorted page of users and its pagination metadata.

        ``search`` matches name, email or company name (case-insensitive
        substring). Filters of different kinds combine with AND. Unknown sort
        keys fall back to newest first.
        """
        self._require_admin(actor)

        page = max(page or 1, 1)
        limit = min(max(limit or DEFAULT_PAGE_SIZE, 1), MAX_PAGE_SIZE)

        query = self._db.query(User)

        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    User.name.ilike(pattern),
                    User.email.ilike(pattern),
                    User.company_name.ilike(pattern),
                )
            )

        if role:
            query = query.filter(User.role == role.lower())

        if is_active is not None:
            query = query.filter(User.is_active == is_active)

        total = query.count()

        column = SORT_COLUMNS.get(sort_by)
        if column is None:
            order = User.created_at.desc()
        else:
            order = column.asc() if sort_order == "asc" else column.desc()

        users = (
            query.order_by(order, User.id)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        pagination = Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit),
        )
        return users, pagination

    def create_user(self, actor: Optional[Actor], payload: UserCreate) -> User:
        """Create an account. Email, name, password and role are required."""
        admin = self._require_admin(actor)

        data = payload.model_dump()
        missing = [field for field in ("email", "name", "password", "role") if not data.get(field)]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        email = data["email"].lower()
        if self._email_taken(email):
            raise ConflictError(DUPLICATE_EMAIL)

        data["email"] = email
        data["password"] = get_password_hash(data["password"])
        data["role"] = payload.role.value
        if data.get("subscription_tier") is not None:
            data["subscription_tier"] = data["subscription_tier"].value

        user = User(**data)
        self._db.add(user)
        self._flush_or_conflict(email=email)

        logger.info("User created", user_id=user.id, role=user.role, actor_id=admin.id)
        return user

    def update_user(self, actor: Optional[Actor], user_id: str, patch: UserUpdate) -> User:
        """Apply only the fields present in ``patch``.

        A non-empty password is re-hashed; an empty one leaves the stored hash
        alone.
        """
        admin = self._require_admin(actor)
        user = self._get_user(user_id)

        changes = patch.model_dump(exclude_unset=True)

        password = changes.pop("password", None)
        if password:
            changes["password"] = get_password_hash(password)

        email = changes.get("email")
        if email:
            changes["email"] = email = email.lower()
            if self._email_taken(email, exclude_id=user.id):
                raise ConflictError(DUPLICATE_EMAIL)

        applied = self._apply_changes(user, changes)
        self._flush_or_conflict(user_id=user.id)

        logger.info("User updated", user_id=user.id, fields=applied, actor_id=admin.id)
        return user

    def delete_user(self, actor: Optional[Actor], user_id: str) -> None:
        """Hard-delete a non-admin account."""
        admin = self._require_admin(actor)
        user = self._get_user(user_id)

        if not can_delete_user(user.role):
            logger.warning("Attempt to delete admin user", user_id=user.id, actor_id=admin.id)
            raise ForbiddenError("Cannot delete admin users")

        self._db.delete(user)
        self._db.flush()

        logger.info("User deleted", user_id=user_id, actor_id=admin.id)

    def get_stats(self, actor: Optional[Actor]) -> UserStats:
        """Account totals, recent sign-ups and the per-role breakdown."""
        self._require_admin(actor)

        total = self._db.query(func.count(User.id)).scalar() or 0
        active = (
            self._db.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar() or 0
        )
        since = utcnow() - timedelta(days=NEW_SIGNUP_WINDOW_DAYS)
        new_signups = (
            self._db.query(func.count(User.id)).filter(User.created_at >= since).scalar() or 0
        )
        by_role = (
            self._db.query(User.role, func.count(User.id))
            .group_by(User.role)
            .order_by(User.role)
            .all()
        )

        return UserStats(
            total_users=total,
            active_users=active,
            inactive_users=total - active,
            new_signups=new_signups,
            user_types=[RoleCount(type=role, count=count) for role, count in by_role],
        )

    # -- self-service -----------------------------------------------------

    def change_own_password(self,
                            actor: Optional[Actor],
                            current_password: str,
                            new_password: str) -> None:
        actor = require_actor(actor)
        user = self._get_user(actor.id)

        if not verify_password(current_password, user.password):
            logger.warning("Password change with wrong current password", user_id=user.id)
            raise ValidationError("Current password is incorrect")

        user.password = get_password_hash(new_password)
        user.updated_at = utcnow()
        self._db.flush()

        logger.info("Password changed", user_id=user.id)

    def update_own_profile(self, actor: Optional[Actor], patch: ProfileUpdate) -> User:
        """Partial update of the actor's own profile fields."""
        actor = require_actor(actor)

        changes = patch.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No data to update")

        user = self._get_user(actor.id)
        applied = self._apply_changes(user, changes)
        self._db.flush()

        logger.info("Profile updated", user_id=user.id, fields=applied)
        return user
