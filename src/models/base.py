"""
Declarative Base

Shared SQLAlchemy 2.0 declarative base for all ORM models.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for ORM models."""
