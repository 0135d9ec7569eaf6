# This project was developed with assistance from AI tools.
__version__ = "0.1.0"

from .database import Base, DatabaseService, SessionLocal, engine, get_db, get_db_service
from .enums import ItemStatus, RequestStatus, UserRole
from .models import (
    AuditEvent,
    CatalogEntry,
    DocumentRequest,
    Rating,
    RequestItem,
    TransactionSequence,
    User,
)

__all__ = [
    "Base",
    "DatabaseService",
    "SessionLocal",
    "engine",
    "get_db",
    "get_db_service",
    "__version__",
    # Enums
    "ItemStatus",
    "RequestStatus",
    "UserRole",
    # Models
    "AuditEvent",
    "CatalogEntry",
    "DocumentRequest",
    "Rating",
    "RequestItem",
    "TransactionSequence",
    "User",
]
