# supportdesk/core/logging.py
import logging
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def build_log_context(
    *,
    user_id: str | None = None,
    ticket_id: str | None = None,
    ticket_number: str | None = None,
    rule_id: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict without customer data or secrets."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = user_id
    if ticket_id:
        context["ticket_id"] = ticket_id
    if ticket_number:
        context["ticket_number"] = ticket_number
    if rule_id:
        context["rule_id"] = rule_id
    return context
