# supportdesk/catalog/models.py
import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from supportdesk.core.clock import utcnow
from supportdesk.core.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Studio(Base):
    __tablename__ = "studios"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    default_priority = Column(String(20), nullable=False, default="medium")
    default_sla_hours = Column(Integer, nullable=True, default=24)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Subcategory(Base):
    __tablename__ = "subcategories"

    id = Column(String(36), primary_key=True, default=_uuid)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    default_priority = Column(String(20), nullable=True)
    sla_hours = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
