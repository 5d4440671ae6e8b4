"""Tender applications: apply to an open tender, list your own, withdraw."""

from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..exceptions import ConflictError, NotFoundError, ValidationError
from ..logging import get_logger
from ..models import ApplicationStatus, Tender, TenderApplication
from ..permissions import require_actor
from ..schemas import Actor
from ..utils.dates import utcnow

logger = get_logger(__name__)

DUPLICATE_APPLICATION = "You have already applied to this tender"


class TenderApplicationService:
    """Application lifecycle scoped to the acting user."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def list_applications(self, actor: Optional[Actor]) -> List[TenderApplication]:
        """All of the actor's applications with their tender, newest first."""
        actor = require_actor(actor)

        return (
            self._db.query(TenderApplication)
            .options(joinedload(TenderApplication.tender))
            .filter(TenderApplication.user_id == actor.id)
            .order_by(TenderApplication.created_at.desc())
            .all()
        )

    def _find_existing(self, user_id: str, tender_id: str) -> Optional[TenderApplication]:
        return (
            self._db.query(TenderApplication)
            .filter(
                TenderApplication.user_id == user_id,
                TenderApplication.tender_id == tender_id,
            )
            .first()
        )

    def _raise_for_rejected_insert(self, actor: Actor, tender_id: str, error: IntegrityError) -> None:
        """Translate a constraint failure on insert once the session is rolled back.

        Only a row now present for (actor, tender) is a duplicate. A tender
        deleted in between is reported as not found; anything else, such as
        an actor whose account no longer exists, propagates.
        """
        if self._find_existing(actor.id, tender_id) is not None:
            logger.warning("Concurrent duplicate tender application", user_id=actor.id, tender_id=tender_id)
            raise ConflictError(DUPLICATE_APPLICATION) from error

        if self._db.query(Tender.id).filter(Tender.id == tender_id).first() is None:
            raise NotFoundError("Tender not found") from error

        logger.error(
            "Tender application insert rejected",
            user_id=actor.id,
            tender_id=tender_id,
            error=str(error.orig),
        )
        raise error

    def create_application(self,
                           actor: Optional[Actor],
                           tender_id: Optional[str],
                           notes: Optional[str] = None) -> TenderApplication:
        """Apply to a tender.

        Checks run in order and stop at the first failure: tender id present,
        no earlier application by the actor, tender exists, tender is open.
        The unique constraint on (user_id, tender_id) still rejects a
        concurrent duplicate that slips past the lookup.
        """
        actor = require_actor(actor)

        if not tender_id:
            raise ValidationError("Tender ID is required")

        if self._find_existing(actor.id, tender_id) is not None:
            logger.warning("Duplicate tender application", user_id=actor.id, tender_id=tender_id)
            raise ConflictError(DUPLICATE_APPLICATION)

        tender = self._db.query(Tender).filter(Tender.id == tender_id).first()
        if tender is None:
            raise NotFoundError("Tender not found")

        if not tender.is_open:
            logger.warning(
                "Application to a closed tender refused",
                user_id=actor.id,
                tender_id=tender_id,
                tender_status=tender.status,
            )
            raise ValidationError("This tender is no longer accepting applications")

        application = TenderApplication(
            user_id=actor.id,
            tender_id=tender_id,
            application_status=ApplicationStatus.SUBMITTED.value,
            application_date=utcnow(),
            notes=notes or None,
        )
        self._db.add(application)

        try:
            self._db.flush()
        except IntegrityError as e:
            self._db.rollback()
            self._raise_for_rejected_insert(actor, tender_id, e)

        logger.info(
            "Tender application created",
            application_id=application.id,
            user_id=actor.id,
            tender_id=tender_id,
        )
        return application

    def withdraw_application(self, actor: Optional[Actor], application_id: str) -> None:
        """Delete one of the actor's applications while it is still pending.

        Applications owned by someone else are reported as not found.
        """
        actor = require_actor(actor)

        application = (
            self._db.query(TenderApplication)
            .filter(
                TenderApplication.id == application_id,
                TenderApplication.user_id == actor.id,
            )
            .first()
        )
        if application is None:
            raise NotFoundError("Application not found")

        if application.application_status != ApplicationStatus.PENDING.value:
            logger.warning(
                "Withdrawal of non-pending application refused",
                application_id=application_id,
                application_status=application.application_status,
            )
            raise ValidationError("Cannot delete a non-pending application")

        self._db.delete(application)
        self._db.flush()

        logger.info("Tender application withdrawn", application_id=application_id, user_id=actor.id)
