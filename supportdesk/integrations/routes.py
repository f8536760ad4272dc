# supportdesk/integrations/routes.py
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from supportdesk.core.database import get_db
from supportdesk.core.deps import get_current_user_id
from supportdesk.integrations import services as integration_service
from supportdesk.integrations.schemas import (
    AppConfig,
    AppConfigUpdate,
    EmailClassifyRequest,
    EmailClassifyResponse,
    EmailImportRequest,
    EmailImportResponse,
    EmailRule,
    EmailRuleCreate,
    RuleRef,
    WebhookAccepted,
    WebhookCreated,
    WebhookRule,
    WebhookRuleCreate,
)
from supportdesk.integrations.store import ConfigStore, get_config_store
from supportdesk.ticket.schemas import TicketSummary

# Public: the key in the path is the only credential
webhook_router = APIRouter(prefix="/webhooks", tags=["Webhooks"])

router = APIRouter(
    prefix="/integrations",
    tags=["Integrations"],
    dependencies=[Depends(get_current_user_id)],
)


@webhook_router.post(
    "/{key}",
    status_code=201,
    response_model=WebhookCreated,
    responses={202: {"model": WebhookAccepted}},
)
def receive_webhook(
    key: str,
    payload: Any = Body(default=None),
    db: Session = Depends(get_db),
    store: ConfigStore = Depends(get_config_store),
):
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Webhook body must be a JSON object")

    outcome = integration_service.ingest_webhook(db, store, key, payload)
    if outcome.ticket is None:
        accepted = WebhookAccepted(
            message="Webhook received; ticket not created (manual processing)",
            rule=RuleRef(id=outcome.rule.id, name=outcome.rule.name),
        )
        return JSONResponse(status_code=202, content=accepted.model_dump(mode="json", by_alias=True))
    return WebhookCreated(ticket=TicketSummary.model_validate(outcome.ticket))


@router.get("/config", response_model=AppConfig)
def read_config(store: ConfigStore = Depends(get_config_store)):
    return store.load()


@router.put("/config", response_model=AppConfig)
def write_config(payload: AppConfigUpdate, store: ConfigStore = Depends(get_config_store)):
    return integration_service.replace_config(store, payload)


@router.post("/webhooks/rules", response_model=WebhookRule, status_code=201)
def create_webhook_rule(payload: WebhookRuleCreate, store: ConfigStore = Depends(get_config_store)):
    return integration_service.add_webhook_rule(store, payload)


@router.delete("/webhooks/rules/{rule_id}", status_code=204)
def delete_webhook_rule(rule_id: str, store: ConfigStore = Depends(get_config_store)):
    integration_service.remove_webhook_rule(store, rule_id)
    return Response(status_code=204)


@router.post("/email/rules", response_model=EmailRule, status_code=201)
def create_email_rule(payload: EmailRuleCreate, store: ConfigStore = Depends(get_config_store)):
    return integration_service.add_email_rule(store, payload)


@router.delete("/email/rules/{rule_id}", status_code=204)
def delete_email_rule(rule_id: str, store: ConfigStore = Depends(get_config_store)):
    integration_service.remove_email_rule(store, rule_id)
    return Response(status_code=204)


@router.post("/email/classify", response_model=EmailClassifyResponse)
def classify_email(payload: EmailClassifyRequest, store: ConfigStore = Depends(get_config_store)):
    rule = integration_service.classify_email(store, payload.subject, payload.body)
    return EmailClassifyResponse(matched=rule is not None, rule=rule)


@router.post("/email/import", response_model=EmailImportResponse, status_code=201)
def import_email(
    payload: EmailImportRequest,
    db: Session = Depends(get_db),
    store: ConfigStore = Depends(get_config_store),
    user_id: str = Depends(get_current_user_id),
):
    return integration_service.import_emails(db, store, payload.messages, user_id)
