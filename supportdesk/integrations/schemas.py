# supportdesk/integrations/schemas.py
import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from supportdesk.ticket.lifecycle import TicketPriority
from supportdesk.ticket.schemas import TicketSummary


class ConfigModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _rule_id() -> str:
    return str(uuid.uuid4())


# --- rules ------------------------------------------------------------------

class WebhookRule(ConfigModel):
    id: str = Field(default_factory=_rule_id)
    name: str = Field(..., min_length=1)
    key: str = Field(..., min_length=1)
    is_active: bool = True
    default_studio_id: str | None = None
    default_category_id: str | None = None
    default_priority: TicketPriority = TicketPriority.MEDIUM
    process_automatically: bool = False
    assignee_user_id: str | None = None


class EmailRule(ConfigModel):
    id: str = Field(default_factory=_rule_id)
    name: str = Field(..., min_length=1)
    match_keywords: list[str] = Field(default_factory=list)
    category_id: str | None = None
    subcategory_id: str | None = None
    priority: TicketPriority = TicketPriority.MEDIUM
    auto_process: bool = False
    assignee_user_id: str | None = None


class WebhookRuleCreate(ConfigModel):
    name: str = Field(..., min_length=1)
    key: str | None = None
    is_active: bool = True
    default_studio_id: str | None = None
    default_category_id: str | None = None
    default_priority: TicketPriority = TicketPriority.MEDIUM
    process_automatically: bool = False
    assignee_user_id: str | None = None


class EmailRuleCreate(ConfigModel):
    name: str = Field(..., min_length=1)
    match_keywords: list[str] = Field(..., min_length=1)
    category_id: str | None = None
    subcategory_id: str | None = None
    priority: TicketPriority = TicketPriority.MEDIUM
    auto_process: bool = False
    assignee_user_id: str | None = None


# --- configuration document -------------------------------------------------

class UiSettings(ConfigModel):
    compact_mode: bool = False
    animations_enabled: bool = True


class MailtrapSettings(ConfigModel):
    enabled: bool = True
    from_email: str = "support@example.com"
    from_name: str = "Support Desk"


class WebhookSettings(ConfigModel):
    enabled: bool = False
    rules: list[WebhookRule] = Field(default_factory=list)


class ConnectedAccount(ConfigModel):
    id: str
    email: str
    connected_at: datetime | None = None


class EmailSettings(ConfigModel):
    enabled: bool = False
    connected_accounts: list[ConnectedAccount] = Field(default_factory=list)
    rules: list[EmailRule] = Field(default_factory=list)


class Integrations(ConfigModel):
    mailtrap: MailtrapSettings = Field(default_factory=MailtrapSettings)
    webhooks: WebhookSettings = Field(default_factory=WebhookSettings)
    email: EmailSettings = Field(default_factory=EmailSettings)


class AppConfig(ConfigModel):
    """The single persisted integrations document.

    Every sub-object has defaults, so validating a partially written
    document always yields the full shape.
    """

    ui: UiSettings = Field(default_factory=UiSettings)
    integrations: Integrations = Field(default_factory=Integrations)
    version: int = 0


class AppConfigUpdate(AppConfig):
    expected_version: int | None = None


# --- email ------------------------------------------------------------------

class EmailClassifyRequest(ConfigModel):
    subject: str = ""
    body: str = ""


class EmailClassifyResponse(ConfigModel):
    matched: bool
    rule: EmailRule | None = None


class RawMessage(ConfigModel):
    id: str | None = None
    sender: str | None = Field(default=None, alias="from")
    subject: str = ""
    body: str = ""
    received_at: datetime | None = None


class EmailImportRequest(ConfigModel):
    messages: list[RawMessage] = Field(..., min_length=1)


class EmailImportResult(ConfigModel):
    message_id: str | None = None
    matched: bool
    rule_id: str | None = None
    skipped: bool = False
    ticket: TicketSummary


class EmailImportResponse(ConfigModel):
    created: int
    skipped: int
    results: list[EmailImportResult]


# --- webhook ----------------------------------------------------------------

class RuleRef(ConfigModel):
    id: str
    name: str


class WebhookAccepted(ConfigModel):
    message: str
    rule: RuleRef


class WebhookCreated(ConfigModel):
    ticket: TicketSummary


WebhookPayload = dict[str, Any]
Channel = Literal["webhook", "email"]
