# supportdesk/ticket/schemas.py
from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from supportdesk.ticket.lifecycle import TicketPriority, TicketStatus


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


# --- ticket provenance (dynamicFieldData) ---------------------------------

class WebhookOrigin(ApiModel):
    origin: Literal["webhook"] = "webhook"
    webhook_rule_id: str
    webhook_rule_name: str | None = None
    webhook_payload: dict[str, Any] = Field(default_factory=dict)


class EmailImportDetails(ApiModel):
    sender: str | None = Field(default=None, alias="from")
    subject: str | None = None
    received_at: datetime | None = None


class EmailImportOrigin(ApiModel):
    origin: Literal["email_import"] = "email_import"
    gmail_message_id: str | None = None
    email_rule_id: str | None = None
    gmail_import: EmailImportDetails = Field(default_factory=EmailImportDetails)


class ManualOrigin(ApiModel):
    """Form-wizard values; keys are whatever the category's fields define."""

    model_config = ConfigDict(extra="allow")

    origin: Literal["manual"] = "manual"


TicketOrigin = Annotated[
    Union[WebhookOrigin, EmailImportOrigin, ManualOrigin],
    Field(discriminator="origin"),
]


# --- requests ---------------------------------------------------------------

class TicketCreate(ApiModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = None
    studio_id: str | None = None
    category_id: str | None = None
    subcategory_id: str | None = None
    priority: TicketPriority | None = None
    source: str = "in-person"
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    assigned_to_user_id: str | None = None
    dynamic_field_data: dict[str, Any] | None = None


_NOT_NULL_FIELDS = ("title", "studio_id", "category_id", "priority", "status")


class TicketUpdate(ApiModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    studio_id: str | None = None
    category_id: str | None = None
    subcategory_id: str | None = None
    priority: TicketPriority | None = None
    status: TicketStatus | None = None
    source: str | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    assigned_to_user_id: str | None = None
    resolution_summary: str | None = None
    internal_notes: str | None = None
    sla_due_at: datetime | None = None
    first_response_at: datetime | None = None
    resolved_at: datetime | None = None
    closed_at: datetime | None = None

    # Optional compare-and-swap token; never written as a field change
    version: int | None = None

    @model_validator(mode="after")
    def _required_fields_not_cleared(self):
        for name in _NOT_NULL_FIELDS:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null")
        return self

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude={"version"})


class StatusOwnerUpdate(ApiModel):
    status: str | None = None


class CloseOwnerRequest(ApiModel):
    resolution_summary: str | None = None


class CommentCreate(ApiModel):
    content: str = Field(..., min_length=1)
    comment_type: Literal["comment", "note", "resolution"] = "comment"
    is_internal: bool = False
    is_resolution: bool = False
    time_spent_minutes: int | None = Field(default=None, ge=0)


# --- responses --------------------------------------------------------------

class TicketOut(ApiModel):
    id: str
    ticket_number: str
    studio_id: str
    category_id: str
    subcategory_id: str | None = None
    priority: TicketPriority
    status: TicketStatus
    source: str | None = None
    title: str
    description: str | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    resolution_summary: str | None = None
    internal_notes: str | None = None
    assigned_to_user_id: str | None = None
    reported_by_user_id: str | None = None
    sla_due_at: datetime | None = None
    sla_breached: bool = False
    created_at: datetime
    updated_at: datetime
    first_response_at: datetime | None = None
    resolved_at: datetime | None = None
    closed_at: datetime | None = None
    reopened_at: datetime | None = None
    dynamic_field_data: TicketOrigin
    version: int


class TicketSummary(ApiModel):
    id: str
    ticket_number: str
    title: str
    status: TicketStatus | None = None


class TicketHistoryOut(ApiModel):
    id: int
    ticket_id: str
    changed_by_user_id: str | None = None
    action: Literal["created", "updated"]
    field_changed: str | None = None
    old_value: str | None = None
    new_value: str | None = None
    created_at: datetime


class CommentOut(ApiModel):
    id: str
    ticket_id: str
    user_id: str
    content: str
    comment_type: str
    is_internal: bool
    is_resolution: bool
    time_spent_minutes: int | None = None
    created_at: datetime
