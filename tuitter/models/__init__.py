"""SQLAlchemy models for Tuitter."""

from .base import Base
from .user import User
from .tuit import Tuit
from .feedback import Bookmark, Like, Retuit, View
from .session import Session

__all__ = [
    "Base",
    "User",
    "Tuit",
    "View",
    "Like",
    "Retuit",
    "Bookmark",
    "Session",
]
