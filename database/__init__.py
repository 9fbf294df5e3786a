"""
Database Package

SQLAlchemy models and async connection management.
"""

from database.connection import (
    init_db,
    close_db,
    configure,
    create_engine_for,
    create_session_factory,
    get_engine,
)

from database.models import (
    Base,
    RFP,
    RFPVendor,
    VendorResponse,
)

__all__ = [
    # Connection
    "init_db",
    "close_db",
    "configure",
    "create_engine_for",
    "create_session_factory",
    "get_engine",
    # Models
    "Base",
    "RFP",
    "RFPVendor",
    "VendorResponse",
]
