"""SQLAlchemy ORM models for TenderPortal."""

import uuid
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, String, Text, UniqueConstraint
)
from sqlalchemy.orm import relationship

from .db import Base
from .utils.dates import utcnow


def _new_id() -> str:
    return str(uuid.uuid4())


class _CaseInsensitiveEnum(str, Enum):
    """String enum that accepts any casing of its values."""

    @classmethod
    def parse(cls, value: Optional[str]):
        """Return the member for ``value`` ignoring case and surrounding blanks, or None."""
        if value is None:
            return None
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return None

    @classmethod
    def values(cls) -> list:
        return [member.value for member in cls]


class Role(_CaseInsensitiveEnum):
    """Account roles."""

    GOVERNMENT_OFFICIAL = "government_official"
    BIDDER = "bidder"
    ADMIN = "admin"
    VIEWER = "viewer"


class SubscriptionTier(_CaseInsensitiveEnum):
    """Bidder subscription plans."""

    BASIC = "basic"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


class TenderStatus(_CaseInsensitiveEnum):
    """Known tender statuses. Stored data may use any casing."""

    OPEN = "open"
    CLOSED = "closed"
    DRAFT = "draft"
    EVALUATION = "evaluation"
    AWARDED = "awarded"
    PENDING = "pending"
    CANCELLED = "cancelled"
    UNDER_REVIEW = "under_review"
    PUBLISHED = "published"


class ApplicationStatus(_CaseInsensitiveEnum):
    """Lifecycle of a tender application."""

    PENDING = "pending"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class User(Base):
    """Portal accounts: officials, bidders, administrators and viewers."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(255), nullable=False, unique=True, index=True)  # always lower-case
    name = Column(String(255), nullable=False)
    password = Column(String(255), nullable=True)  # bcrypt hash
    role = Column(String(50), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    # Shared profile
    company_name = Column(String(255), nullable=True)
    phone_number = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)

    # Government officials and admins
    department = Column(String(255), nullable=True)
    position = Column(String(255), nullable=True)
    government_id = Column(String(100), nullable=True)

    # Bidders
    business_registration_number = Column(String(100), nullable=True)
    tax_id = Column(String(100), nullable=True)
    bidder_category = Column(String(100), nullable=True)
    certifications = Column(Text, nullable=True)
    subscription_tier = Column(String(20), nullable=True)
    subscription_expiry = Column(DateTime, nullable=True)

    # Metadata
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    applications = relationship(
        "TenderApplication",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<User(id='{self.id}', email='{self.email}', role='{self.role}')>"


class Tender(Base):
    """Published procurement opportunities."""

    __tablename__ = "tenders"

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(Text, nullable=False)
    ref_number = Column(String(100), nullable=True, index=True)
    status = Column(String(50), nullable=False, index=True)  # free-form, compare case-insensitively

    # Dates
    opening_date = Column(Date, nullable=True)
    closing_date = Column(DateTime, nullable=True)

    # Documents (object storage key + public CDN URL)
    bid_document = Column(Text, nullable=True)
    bid_document_s3_key = Column(Text, nullable=True)
    bid_document_cdn_url = Column(Text, nullable=True)
    bid_report = Column(Text, nullable=True)
    bid_report_s3_key = Column(Text, nullable=True)
    bid_report_cdn_url = Column(Text, nullable=True)

    amendments = Column(Text, nullable=True)

    # Metadata
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    applications = relationship(
        "TenderApplication",
        back_populates="tender",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Tender(id='{self.id}', ref_number='{self.ref_number}', status='{self.status}')>"

    @property
    def is_open(self) -> bool:
        """Whether the tender currently accepts applications.

        Only the stored status, lowercased, counts; padded values are not open.
        """
        return (self.status or "").lower() == TenderStatus.OPEN.value


class TenderApplication(Base):
    """A bidder's application to a tender. One per (user, tender)."""

    __tablename__ = "tender_applications"
    __table_args__ = (
        UniqueConstraint("user_id", "tender_id", name="unique_user_tender_application"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tender_id = Column(
        String(36), ForeignKey("tenders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    application_status = Column(
        String(50), nullable=False, default=ApplicationStatus.PENDING.value, index=True
    )
    application_date = Column(DateTime, nullable=False, default=utcnow)
    notes = Column(Text, nullable=True)

    # Metadata
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    user = relationship("User", back_populates="applications")
    tender = relationship("Tender", back_populates="applications")

    def __repr__(self) -> str:
        return (
            f"<TenderApplication(id='{self.id}', tender_id='{self.tender_id}', "
            f"status='{self.application_status}')>"
        )
