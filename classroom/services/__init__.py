"""Stores implementing the classroom domain on top of SQLAlchemy sessions."""

from .catalog import CatalogStore
from .classes import ClassStore
from .identity import IdentityStore, SessionMetadata
from .integrity import (
    DELETE_RULES,
    DeleteAction,
    DeletePlan,
    DeleteRule,
    IntegrityPolicy,
)

__all__ = [
    "CatalogStore",
    "ClassStore",
    "IdentityStore",
    "SessionMetadata",
    "IntegrityPolicy",
    "DeleteRule",
    "DeleteAction",
    "DeletePlan",
    "DELETE_RULES",
]
