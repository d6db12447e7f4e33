"""Infrastructure layer - External dependencies and implementations.

This layer contains all external dependencies including:
- Database adapters (SQLAlchemy)
- API routes (FastAPI)
- Signing keys, password hashing and opaque tokens
- Outbound email providers
"""

from gatekeep.infrastructure.persistence.database import (
    Base,
    DatabaseManager,
    get_db_session,
    init_database,
)

__all__ = [
    "Base",
    "DatabaseManager",
    "get_db_session",
    "init_database",
]
