"""TenderPortal - tender publication and bidder applications.

Government entities publish tenders, bidders apply to them and
administrators manage the accounts involved.
"""

__version__ = "0.1.0"

# Re-export commonly used components
from .config import settings
from .db import get_db, get_db_context, get_engine

__all__ = ["settings", "get_db", "get_db_context", "get_engine"]
