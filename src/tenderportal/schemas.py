"""Request and response models for accounts, tenders, applications and uploads."""

import re
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .models import ApplicationStatus, Role, SubscriptionTier, TenderStatus

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
PHONE_PATTERN = re.compile(r"^[+]?[\d\s\-()]+$")


def _check_password_strength(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters")
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number"
        )
    return value


def _check_phone(value: Optional[str]) -> Optional[str]:
    if not value:
        return value
    if not PHONE_PATTERN.match(value):
        raise ValueError("Please enter a valid phone number")
    if len(re.sub(r"[\s\-()]", "", value)) < 10:
        raise ValueError("Phone number must be at least 10 digits")
    return value


def _lower(value):
    return value.strip().lower() if isinstance(value, str) else value


class Actor(BaseModel):
    """Authenticated identity performing an operation."""

    model_config = ConfigDict(frozen=True)

    id: str
    role: str
    email: Optional[str] = None


class CamelModel(BaseModel):
    """User-facing payloads use camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

class SignUpRequest(CamelModel):
    """Self-service registration. Required profile fields depend on the role."""

    email: EmailStr
    password: str
    confirm_password: str
    name: str = Field(..., min_length=2)
    role: Role
    company_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    government_id: Optional[str] = None
    business_registration_number: Optional[str] = None
    tax_id: Optional[str] = None
    bidder_category: Optional[str] = None
    certifications: Optional[str] = None
    subscription_tier: Optional[SubscriptionTier] = None

    @field_validator("email", "role", "subscription_tier", mode="before")
    @classmethod
    def lower_case(cls, v):
        return _lower(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return _check_password_strength(v)

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, v):
        return _check_phone(v)

    @model_validator(mode="after")
    def check_role_fields(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords don't match")

        required = {
            Role.GOVERNMENT_OFFICIAL: {"department": 2, "position": 2, "government_id": 5},
            Role.BIDDER: {
                "company_name": 2,
                "business_registration_number": 5,
                "tax_id": 5,
                "bidder_category": 2,
            },
            Role.ADMIN: {"department": 2, "position": 2},
        }.get(self.role, {})

        missing = [
            field for field, min_len in required.items()
            if len((getattr(self, field) or "").strip()) < min_len
        ]
        if missing:
            raise ValueError(f"Missing or too short for role {self.role.value}: {', '.join(missing)}")
        return self


class LoginRequest(BaseModel):
    """JSON login body."""

    email: str
    password: str


class TokenResponse(BaseModel):
    """Issued access token."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int


# ---------------------------------------------------------------------------
# User directory
# ---------------------------------------------------------------------------

class UserCreate(CamelModel):
    """Admin-created account. Required fields are checked by the service so the
    error can name every missing one."""

    email: Optional[EmailStr] = None
    name: Optional[str] = None
    password: Optional[str] = None
    role: Optional[Role] = None
    is_active: bool = True
    subscription_tier: Optional[SubscriptionTier] = None
    company_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    government_id: Optional[str] = None
    business_registration_number: Optional[str] = None
    tax_id: Optional[str] = None
    bidder_category: Optional[str] = None
    certifications: Optional[str] = None

    @field_validator("email", "role", "subscription_tier", mode="before")
    @classmethod
    def lower_case(cls, v):
        # blank counts as missing so the service can name it
        return _lower(v) or None


class UserUpdate(CamelModel):
    """Partial admin update: only keys present in the request are applied."""

    email: Optional[EmailStr] = None
    name: Optional[str] = None
    password: Optional[str] = None
    role: Optional[Role] = None
    is_active: Optional[bool] = None
    subscription_tier: Optional[SubscriptionTier] = None
    subscription_expiry: Optional[datetime] = None
    company_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    government_id: Optional[str] = None
    business_registration_number: Optional[str] = None
    tax_id: Optional[str] = None
    bidder_category: Optional[str] = None
    certifications: Optional[str] = None

    @field_validator("email", "role", "subscription_tier", mode="before")
    @classmethod
    def lower_case(cls, v):
        return _lower(v)


class ProfileUpdate(CamelModel):
    """Fields a user may change on their own account."""

    name: Optional[str] = Field(None, min_length=2)
    company_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    business_registration_number: Optional[str] = None
    tax_id: Optional[str] = None
    bidder_category: Optional[str] = None
    certifications: Optional[str] = None

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, v):
        return _check_phone(v)


class PasswordChange(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str
    confirm_new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v):
        return _check_password_strength(v)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.confirm_new_password:
            raise ValueError("Passwords don't match")
        return self


class UserSummary(CamelModel):
    """Account as returned to clients. Never carries the password hash."""

    id: str
    email: str
    name: str
    role: str
    is_active: bool
    subscription_tier: Optional[str] = None
    subscription_expiry: Optional[datetime] = None
    company_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    government_id: Optional[str] = None
    business_registration_number: Optional[str] = None
    tax_id: Optional[str] = None
    bidder_category: Optional[str] = None
    certifications: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class UserPage(CamelModel):
    users: List[UserSummary]
    pagination: Pagination


class UserMutationResponse(CamelModel):
    message: str
    user: UserSummary


class RoleCount(CamelModel):
    type: str
    count: int


class UserStats(CamelModel):
    total_users: int
    active_users: int
    inactive_users: int
    new_signups: int
    user_types: List[RoleCount]


class MessageResponse(BaseModel):
    message: str


# ---------------------------------------------------------------------------
# Tenders
# ---------------------------------------------------------------------------

def _normalize_tender_status(value):
    if value is None:
        return value
    status = TenderStatus.parse(value)
    if status is None:
        raise ValueError(f"Unknown tender status '{value}'. Expected one of: {', '.join(TenderStatus.values())}")
    return status.value


class TenderCreate(BaseModel):
    """Schema for creating a tender."""

    title: str = Field(..., min_length=1)
    ref_number: Optional[str] = Field(None, max_length=100)
    status: str = TenderStatus.DRAFT.value
    opening_date: Optional[date] = None
    closing_date: Optional[datetime] = None
    amendments: Optional[str] = None
    bid_document: Optional[str] = None
    bid_report: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return _normalize_tender_status(v)


class TenderUpdate(BaseModel):
    """Schema for updating a tender."""

    title: Optional[str] = Field(None, min_length=1)
    ref_number: Optional[str] = Field(None, max_length=100)
    status: Optional[str] = None
    opening_date: Optional[date] = None
    closing_date: Optional[datetime] = None
    amendments: Optional[str] = None
    bid_document: Optional[str] = None
    bid_report: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return _normalize_tender_status(v)


class TenderSummary(BaseModel):
    """Tender fields shown alongside an application."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    ref_number: Optional[str] = None
    status: str
    opening_date: Optional[date] = None
    closing_date: Optional[datetime] = None


class TenderResponse(TenderSummary):
    """Schema for a tender with all fields."""

    bid_document: Optional[str] = None
    bid_document_s3_key: Optional[str] = None
    bid_document_cdn_url: Optional[str] = None
    bid_report: Optional[str] = None
    bid_report_s3_key: Optional[str] = None
    bid_report_cdn_url: Optional[str] = None
    amendments: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class UploadResult(BaseModel):
    """Where an uploaded document lives."""

    storage_key: str
    public_url: str


class UploadResponse(BaseModel):
    success: bool = True
    data: UploadResult


# ---------------------------------------------------------------------------
# Tender applications
# ---------------------------------------------------------------------------

class ApplicationCreate(BaseModel):
    """tender_id is optional here so the service reports its absence itself."""

    tender_id: Optional[str] = None
    notes: Optional[str] = None


class ApplicationResponse(BaseModel):
    """A stored application row."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    tender_id: str
    application_status: ApplicationStatus
    application_date: datetime
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ApplicationDetail(BaseModel):
    """Application with the tender it targets."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    tender_id: str
    application_status: ApplicationStatus
    application_date: datetime
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    tender: TenderSummary
