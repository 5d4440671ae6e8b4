"""Sign-up and authentication endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm

from ...exceptions import NotFoundError
from ...logging import get_logger
from ...models import User
from ...schemas import LoginRequest, SignUpRequest, TokenResponse, UserMutationResponse, UserSummary
from ...security import ACCESS_TOKEN_EXPIRE_MINUTES
from ..dependencies import Accounts, AuthenticatedActor, DatabaseSession, issue_token

logger = get_logger(__name__)

router = APIRouter()


def _token_response(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=issue_token(user),
        token_type="bearer",
        expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.post(
    "/sign-up",
    response_model=UserMutationResponse,
    status_code=status.HTTP_201_CREATED,
)
def sign_up(payload: SignUpRequest, accounts: Accounts):
    """Register a new account."""

    user = accounts.sign_up(payload)
    return UserMutationResponse(message="User created successfully", user=UserSummary.model_validate(user))


@router.post("/login", response_model=TokenResponse)
def login(form_data: Annotated[OAuth2PasswordRequestForm, Depends()], accounts: Accounts):
    """OAuth2 password flow. The username field carries the email."""

    user = accounts.authenticate(form_data.username, form_data.password)
    return _token_response(user)


@router.post("/login/json", response_model=TokenResponse)
def login_json(credentials: LoginRequest, accounts: Accounts):
    """Login with a JSON body."""

    user = accounts.authenticate(credentials.email, credentials.password)
    return _token_response(user)


@router.get("/me", response_model=UserSummary)
def get_current_user_info(actor: AuthenticatedActor, db: DatabaseSession):
    """Get current user information."""

    user = db.query(User).filter(User.id == actor.id).first()
    if user is None:
        raise NotFoundError("User not found")

    return user
