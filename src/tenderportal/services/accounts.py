"""Self-service sign-up and credential checks."""

from dateutil.relativedelta import relativedelta
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..exceptions import ConflictError, UnauthenticatedError
from ..logging import get_logger
from ..models import Role, SubscriptionTier, User
from ..schemas import SignUpRequest
from ..security import get_password_hash, verify_password
from ..utils.dates import utcnow

logger = get_logger(__name__)

# Profile fields kept for each role on sign-up; everything else is dropped
ROLE_FIELDS = {
    Role.GOVERNMENT_OFFICIAL: ("department", "position", "government_id"),
    Role.BIDDER: ("business_registration_number", "tax_id", "bidder_category", "certifications"),
    Role.ADMIN: ("department", "position"),
}
COMMON_FIELDS = ("company_name", "phone_number", "address")


class AccountService:

    def __init__(self, db: Session) -> None:
        self._db = db

    def sign_up(self, payload: SignUpRequest) -> User:
        """Register a new active account.

        Bidders start on the basic tier unless they pick another; paid tiers
        expire one calendar month after sign-up.
        """
        email = payload.email.lower()

        if self._db.query(User.id).filter(User.email == email).first() is not None:
            logger.warning("Sign-up with existing email", email=email)
            raise ConflictError("User with this email already exists")

        user = User(
            email=email,
            name=payload.name,
            password=get_password_hash(payload.password),
            role=payload.role.value,
            is_active=True,
        )

        for field in COMMON_FIELDS + ROLE_FIELDS.get(payload.role, ()):
            setattr(user, field, getattr(payload, field))

        if payload.role is Role.BIDDER:
            tier = payload.subscription_tier or SubscriptionTier.BASIC
            user.subscription_tier = tier.value
            if tier is not SubscriptionTier.BASIC:
                user.subscription_expiry = utcnow() + relativedelta(months=1)

        self._db.add(user)
        try:
            self._db.flush()
        except IntegrityError as e:
            self._db.rollback()
            raise ConflictError("User with this email already exists") from e

        logger.info("User signed up", user_id=user.id, role=user.role)
        return user

    def authenticate(self, email: str, password: str) -> User:
        """Return the user for valid credentials.

        Raises:
            UnauthenticatedError: unknown email, no stored password, wrong
                password, or a deactivated account.
        """
        user = self._db.query(User).filter(User.email == (email or "").strip().lower()).first()

        if user is None or not user.password:
            logger.warning("Login failed", reason="unknown_user")
            raise UnauthenticatedError("Invalid credentials")

        if not user.is_active:
            logger.warning("Login refused for deactivated account", user_id=user.id)
            raise UnauthenticatedError("Account is deactivated")

        if not verify_password(password, user.password):
            logger.warning("Login failed", reason="bad_password", user_id=user.id)
            raise UnauthenticatedError("Invalid credentials")

        logger.info("User authenticated", user_id=user.id)
        return user
