"""Business logic, kept apart from HTTP.

Services take a SQLAlchemy session (and a storage client where they upload)
and raise the domain errors from ``tenderportal.exceptions``, never
HTTPException.
"""

from .accounts import AccountService
from .applications import TenderApplicationService
from .tenders import TenderService
from .users import UserDirectoryService

__all__ = [
    "AccountService",
    "TenderApplicationService",
    "TenderService",
    "UserDirectoryService",
]
