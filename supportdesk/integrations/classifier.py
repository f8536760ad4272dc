# supportdesk/integrations/classifier.py
"""Map inbound events to at most one configured rule.

First match wins in both channels; rule order in the configuration document
is the priority order. Finding nothing is a normal outcome.
"""
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from supportdesk.integrations.schemas import Channel, EmailRule, WebhookRule


@dataclass(frozen=True)
class Classification:
    rule: WebhookRule | EmailRule | None
    category_id: str | None = None
    subcategory_id: str | None = None
    priority: str | None = None
    auto_process: bool = False
    assignee_user_id: str | None = None

    @property
    def matched(self) -> bool:
        return self.rule is not None


NO_MATCH = Classification(rule=None)


def match_email_rule(subject: str | None, body: str | None, rules: Sequence[EmailRule]) -> EmailRule | None:
    haystack = f"{subject or ''}\n{body or ''}".lower()
    for rule in rules:
        for keyword in rule.match_keywords:
            needle = keyword.strip().lower()
            if needle and needle in haystack:
                return rule
    return None


def match_webhook_rule(key: str | None, rules: Sequence[WebhookRule]) -> WebhookRule | None:
    if not key:
        return None
    return next((r for r in rules if r.is_active and r.key == key), None)


def classify(channel: Channel, payload: Mapping[str, Any], rules: Sequence) -> Classification:
    """Classify a webhook (``{"key": ...}``) or email (``{"subject", "body"}``) event."""
    if channel == "webhook":
        rule = match_webhook_rule(payload.get("key"), rules)
        if rule is None:
            return NO_MATCH
        return Classification(
            rule=rule,
            category_id=rule.default_category_id,
            priority=rule.default_priority.value,
            auto_process=rule.process_automatically,
            assignee_user_id=rule.assignee_user_id,
        )
    if channel == "email":
        rule = match_email_rule(payload.get("subject"), payload.get("body"), rules)
        if rule is None:
            return NO_MATCH
        return Classification(
            rule=rule,
            category_id=rule.category_id,
            subcategory_id=rule.subcategory_id,
            priority=rule.priority.value,
            auto_process=rule.auto_process,
            assignee_user_id=rule.assignee_user_id,
        )
    raise ValueError(f"Unknown channel: {channel}")
