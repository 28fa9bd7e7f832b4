"""
All SQLAlchemy models. Schema is the source of truth for new DBs.
Base.metadata.create_all() creates every table; no migration scripts needed for fresh installs.
"""
from app.models.reference_option import ReferenceOption

__all__ = [
    "ReferenceOption",
]
