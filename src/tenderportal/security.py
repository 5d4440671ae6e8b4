"""Password hashing and access tokens."""

from datetime import timedelta
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import settings
from .logging import get_logger
from .utils.dates import utcnow

logger = get_logger(__name__)

# Password hashing context
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.security.bcrypt_rounds,
)

ALGORITHM = settings.security.jwt_algorithm
ACCESS_TOKEN_EXPIRE_MINUTES = settings.security.access_token_expire_minutes


def get_password_hash(password: str) -> str:
    """Hash password."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify password against hash. A missing or malformed hash never verifies."""
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as e:
        logger.warning("Stored password hash could not be verified", error=str(e))
        return False


def create_access_token(data: Dict[str, Any], expires_delta: Optional[int] = None) -> str:
    """Create JWT access token. ``expires_delta`` is in minutes."""

    to_encode = data.copy()
    minutes = expires_delta if expires_delta else ACCESS_TOKEN_EXPIRE_MINUTES
    to_encode.update({"exp": utcnow() + timedelta(minutes=minutes)})

    return jwt.encode(
        to_encode,
        settings.security.secret_key.get_secret_value(),
        algorithm=ALGORITHM,
    )


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode a JWT access token, or return None if it is invalid or expired."""
    try:
        return jwt.decode(
            token,
            settings.security.secret_key.get_secret_value(),
            algorithms=[ALGORITHM],
        )
    except JWTError as e:
        logger.warning("Invalid JWT token", error=str(e))
        return None
