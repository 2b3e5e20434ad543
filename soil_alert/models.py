"""
SQLAlchemy ORM models for database tables.

This module contains database table definitions using SQLAlchemy.
For Pydantic request/response schemas, see schemas.py.
"""

from sqlalchemy import Column, Integer, String

from soil_alert.storage import Base


# The farmer contact always lives under this primary key (single-row table)
CONTACT_ID = 1


class Contact(Base):
    """
    SQLAlchemy model for the farmer who receives SMS alerts.

    Table: farmers
    Exactly one row is meaningful; upserts always target CONTACT_ID.
    """
    __tablename__ = "farmers"

    id = Column(Integer, primary_key=True, default=CONTACT_ID)
    name = Column(String, nullable=True)
    phone_number = Column(String, nullable=False, unique=True)
    updated_at = Column(String, nullable=False)  # Server time ISO-8601
