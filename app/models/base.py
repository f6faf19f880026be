"""Base Models and Mixins"""

import uuid
from sqlalchemy import Column, DateTime, Boolean
from sqlalchemy.dialects.postgresql import ENUM, UUID

from app.database import Base
from app.utils.time import get_utc_now


class BaseModel(Base):
    """
    Base model class with common fields for all models.

    Provides:
    - UUID primary key
    - created_at timestamp
    - updated_at timestamp
    """
    __abstract__ = True

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    created_at = Column(DateTime, default=get_utc_now, nullable=False, index=True)
    updated_at = Column(DateTime, default=get_utc_now, onupdate=get_utc_now, nullable=False)


class StatusMixin:
    """
    Mixin for models soft-deleted through an active flag.

    Provides:
    - is_active boolean flag
    """
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    def deactivate(self) -> None:
        self.is_active = False


def pg_enum(enum_cls, name: str) -> ENUM:
    """PostgreSQL ENUM storing the enum values (lower-case strings) rather than names"""
    return ENUM(enum_cls, name=name, values_callable=lambda x: [e.value for e in x])
