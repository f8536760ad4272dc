# supportdesk/catalog/schemas.py
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from supportdesk.ticket.lifecycle import TicketPriority


class CatalogModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class StudioCreate(CatalogModel):
    name: str = Field(..., min_length=1)
    code: str | None = None
    is_active: bool = True


class StudioOut(StudioCreate):
    id: str
    created_at: datetime


class CategoryCreate(CatalogModel):
    name: str = Field(..., min_length=1)
    description: str | None = None
    default_priority: TicketPriority = TicketPriority.MEDIUM
    default_sla_hours: int | None = Field(default=24, ge=1)
    is_active: bool = True
    sort_order: int = 0


class CategoryOut(CategoryCreate):
    id: str
    created_at: datetime


class SubcategoryCreate(CatalogModel):
    category_id: str
    name: str = Field(..., min_length=1)
    default_priority: TicketPriority | None = None
    sla_hours: int | None = Field(default=None, ge=1)
    is_active: bool = True
    sort_order: int = 0


class SubcategoryOut(SubcategoryCreate):
    id: str
    created_at: datetime
