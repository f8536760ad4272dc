# supportdesk/integrations/services.py
import logging
import secrets
from dataclasses import dataclass
from email.utils import parseaddr
from typing import Any

from sqlalchemy.orm import Session

from supportdesk.catalog import services as catalog_service
from supportdesk.core.config import get_settings
from supportdesk.core.errors import IngestionDisabledError, NotFoundError
from supportdesk.core.logging import build_log_context
from supportdesk.integrations.classifier import classify
from supportdesk.integrations.schemas import (
    AppConfig,
    AppConfigUpdate,
    EmailImportResponse,
    EmailImportResult,
    EmailRule,
    EmailRuleCreate,
    RawMessage,
    WebhookRule,
    WebhookRuleCreate,
)
from supportdesk.integrations.store import ConfigStore
from supportdesk.ticket.factory import TicketDraft, create_ticket
from supportdesk.ticket.models import Ticket
from supportdesk.ticket.schemas import (
    EmailImportDetails,
    EmailImportOrigin,
    TicketSummary,
    WebhookOrigin,
)

logger = logging.getLogger(__name__)

_TITLE_KEYS = ("title", "subject")
_DESCRIPTION_KEYS = ("description", "body", "message")
_EMAIL_KEYS = ("customerEmail", "email")
_NAME_KEYS = ("customerName", "name")
_PHONE_KEYS = ("customerPhone", "phone")


def _pick(payload: dict[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = payload.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


# --- webhook ----------------------------------------------------------------

@dataclass
class WebhookOutcome:
    rule: WebhookRule
    ticket: Ticket | None = None


def ingest_webhook(db: Session, store: ConfigStore, key: str, payload: dict[str, Any]) -> WebhookOutcome:
    """Turn a public webhook call into a ticket, or accept it for review.

    Each call reloads the rule document and keeps no state of its own, so
    concurrent and repeated deliveries need no extra coordination.
    """
    webhooks = store.load().integrations.webhooks
    if not webhooks.enabled:
        raise IngestionDisabledError("Webhook ingestion is disabled")

    result = classify("webhook", {"key": key}, webhooks.rules)
    if not result.matched:
        logger.info("Webhook call with unknown or inactive key")
        raise NotFoundError("No active webhook rule for this key")

    rule = result.rule
    if not rule.process_automatically:
        logger.info("Webhook accepted for manual review %s", build_log_context(rule_id=rule.id))
        return WebhookOutcome(rule=rule)

    studio_id, category_id = catalog_service.resolve_placement(
        db, rule.default_studio_id, rule.default_category_id
    )
    draft = TicketDraft(
        title=_pick(payload, _TITLE_KEYS) or f"Webhook: {rule.name}",
        description=_pick(payload, _DESCRIPTION_KEYS),
        studio_id=studio_id,
        category_id=category_id,
        priority=result.priority,
        source="webhook",
        auto_process=True,
        assigned_to_user_id=result.assignee_user_id,
        customer_name=_pick(payload, _NAME_KEYS),
        customer_email=_pick(payload, _EMAIL_KEYS),
        customer_phone=_pick(payload, _PHONE_KEYS),
        sla_hours=get_settings().DEFAULT_SLA_HOURS,
        origin=WebhookOrigin(
            webhook_rule_id=rule.id,
            webhook_rule_name=rule.name,
            webhook_payload=payload,
        ),
    )
    ticket = create_ticket(db, draft)
    db.commit()
    db.refresh(ticket)
    logger.info(
        "Webhook ticket created %s",
        build_log_context(rule_id=rule.id, ticket_id=ticket.id, ticket_number=ticket.ticket_number),
    )
    return WebhookOutcome(rule=rule, ticket=ticket)


# --- email ------------------------------------------------------------------

def classify_email(store: ConfigStore, subject: str, body: str) -> EmailRule | None:
    rules = store.load().integrations.email.rules
    return classify("email", {"subject": subject, "body": body}, rules).rule


def _external_ref(message: RawMessage) -> str | None:
    return f"gmail:{message.id}" if message.id else None


def import_emails(
    db: Session, store: ConfigStore, messages: list[RawMessage], user_id: str
) -> EmailImportResponse:
    """Create one ticket per message; all of them or none.

    Email rules never name a studio, so the fallback is resolved up front and
    a missing one fails the whole import before anything is written.
    Messages already imported (same message id) are reported as skipped.
    """
    email = store.load().integrations.email
    if not email.enabled:
        raise IngestionDisabledError("Email ingestion is disabled")

    fallback = catalog_service.resolve_fallback(db)
    results: list[EmailImportResult] = []
    created = skipped = 0

    for message in messages:
        ref = _external_ref(message)
        if ref is not None:
            existing = db.query(Ticket).filter(Ticket.external_ref == ref).first()
            if existing is not None:
                skipped += 1
                results.append(
                    EmailImportResult(
                        message_id=message.id,
                        matched=False,
                        skipped=True,
                        ticket=TicketSummary.model_validate(existing),
                    )
                )
                continue

        result = classify("email", {"subject": message.subject, "body": message.body}, email.rules)
        studio_id, category_id = catalog_service.resolve_placement(
            db, None, result.category_id, result.subcategory_id, fallback=fallback
        )
        sender_name, sender_email = parseaddr(message.sender or "")
        draft = TicketDraft(
            title=message.subject.strip() or "(no subject)",
            description=message.body or None,
            studio_id=studio_id,
            category_id=category_id,
            subcategory_id=result.subcategory_id,
            priority=result.priority,
            source="email",
            auto_process=result.auto_process,
            assigned_to_user_id=result.assignee_user_id if result.auto_process else None,
            reported_by_user_id=user_id,
            customer_name=sender_name or None,
            customer_email=sender_email or None,
            origin=EmailImportOrigin(
                gmail_message_id=message.id,
                email_rule_id=result.rule.id if result.matched else None,
                gmail_import=EmailImportDetails(
                    sender=message.sender,
                    subject=message.subject,
                    received_at=message.received_at,
                ),
            ),
            external_ref=ref,
        )
        ticket = create_ticket(db, draft)
        created += 1
        results.append(
            EmailImportResult(
                message_id=message.id,
                matched=result.matched,
                rule_id=result.rule.id if result.matched else None,
                ticket=TicketSummary.model_validate(ticket),
            )
        )

    db.commit()
    logger.info(
        "Email import finished created=%s skipped=%s %s",
        created,
        skipped,
        build_log_context(user_id=user_id),
    )
    return EmailImportResponse(created=created, skipped=skipped, results=results)


# --- rule administration ----------------------------------------------------

def replace_config(store: ConfigStore, payload: AppConfigUpdate) -> AppConfig:
    config = AppConfig.model_validate(payload.model_dump(exclude={"expected_version"}))
    return store.save(config, expected_version=payload.expected_version)


def add_webhook_rule(store: ConfigStore, payload: WebhookRuleCreate) -> WebhookRule:
    config = store.load()
    rule = WebhookRule(
        **payload.model_dump(exclude={"key"}),
        key=payload.key or secrets.token_urlsafe(24),
    )
    config.integrations.webhooks.rules.append(rule)
    store.save(config, expected_version=config.version)
    return rule


def remove_webhook_rule(store: ConfigStore, rule_id: str) -> None:
    config = store.load()
    rules = config.integrations.webhooks.rules
    remaining = [r for r in rules if r.id != rule_id]
    if len(remaining) == len(rules):
        raise NotFoundError("Webhook rule not found")
    config.integrations.webhooks.rules = remaining
    store.save(config, expected_version=config.version)


def add_email_rule(store: ConfigStore, payload: EmailRuleCreate) -> EmailRule:
    config = store.load()
    rule = EmailRule(**payload.model_dump())
    config.integrations.email.rules.append(rule)
    store.save(config, expected_version=config.version)
    return rule


def remove_email_rule(store: ConfigStore, rule_id: str) -> None:
    config = store.load()
    rules = config.integrations.email.rules
    remaining = [r for r in rules if r.id != rule_id]
    if len(remaining) == len(rules):
        raise NotFoundError("Email rule not found")
    config.integrations.email.rules = remaining
    store.save(config, expected_version=config.version)
