# tests/test_classifier.py
import pytest

from supportdesk.integrations.classifier import classify, match_email_rule, match_webhook_rule
from supportdesk.integrations.schemas import EmailRule, WebhookRule


def _email_rules():
    return [
        EmailRule(id="a", name="A", match_keywords=["  "]),
        EmailRule(id="b", name="B", match_keywords=["Refund", "charge"], auto_process=True),
        EmailRule(id="c", name="C", match_keywords=["refund"], priority="critical"),
    ]


def test_earliest_matching_email_rule_wins():
    rule = match_email_rule("Double CHARGE", "please refund", _email_rules())
    assert rule.id == "b"


def test_blank_keywords_never_match():
    rules = [EmailRule(id="a", name="A", match_keywords=["", " "])]
    assert match_email_rule("anything", "at all", rules) is None


def test_keyword_can_match_body_only():
    rule = match_email_rule(None, "I want a refund", _email_rules())
    assert rule.id == "b"


def test_email_classification_carries_rule_hints():
    rules = [
        EmailRule(
            id="x",
            name="X",
            match_keywords=["leak"],
            category_id="cat",
            subcategory_id="sub",
            priority="high",
            auto_process=True,
            assignee_user_id="u1",
        )
    ]
    result = classify("email", {"subject": "Water LEAK", "body": ""}, rules)
    assert result.matched
    assert result.category_id == "cat"
    assert result.subcategory_id == "sub"
    assert result.priority == "high"
    assert result.auto_process is True
    assert result.assignee_user_id == "u1"


def test_no_match_is_not_an_error():
    result = classify("email", {"subject": "hello", "body": "world"}, _email_rules())
    assert not result.matched
    assert result.rule is None


def test_webhook_match_requires_exact_active_key():
    rules = [
        WebhookRule(id="off", name="Off", key="k1", is_active=False),
        WebhookRule(id="on", name="On", key="k1-live"),
        WebhookRule(id="dup", name="Dup", key="k1-live"),
    ]
    assert match_webhook_rule("k1", rules) is None
    assert match_webhook_rule("K1-LIVE", rules) is None
    assert match_webhook_rule("k1-live", rules).id == "on"
    assert match_webhook_rule("", rules) is None


def test_webhook_classification_uses_rule_defaults():
    rules = [
        WebhookRule(
            id="r",
            name="R",
            key="abc123",
            default_category_id="cat",
            default_priority="high",
            process_automatically=True,
        )
    ]
    result = classify("webhook", {"key": "abc123"}, rules)
    assert result.rule.id == "r"
    assert result.category_id == "cat"
    assert result.priority == "high"
    assert result.auto_process is True


def test_unknown_channel():
    with pytest.raises(ValueError):
        classify("sms", {}, [])
