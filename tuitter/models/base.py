"""Declarative base for Tuitter models."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all Tuitter SQLAlchemy models."""

    pass
