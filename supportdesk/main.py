# supportdesk/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm.exc import StaleDataError

from supportdesk.catalog.routes import router as catalog_router
from supportdesk.core.config import get_settings
from supportdesk.core.database import Base, engine
from supportdesk.core.errors import DomainError
from supportdesk.core.logging import configure_logging
from supportdesk.integrations.routes import router as integrations_router
from supportdesk.integrations.routes import webhook_router
from supportdesk.ticket.routes import router as ticket_router

settings = get_settings()
configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)

app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESC,
    version=settings.APP_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
def handle_domain_error(request: Request, exc: DomainError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(StaleDataError)
def handle_stale_data(request: Request, exc: StaleDataError):
    logger.warning("Concurrent update rejected on %s", request.url.path)
    return JSONResponse(
        status_code=409,
        content={"detail": "Ticket was modified by someone else; reload and retry"},
    )


# Routers
app.include_router(ticket_router)
app.include_router(catalog_router)
app.include_router(integrations_router)
app.include_router(webhook_router)


@app.get("/health", tags=["Health"])
def health():
    return {"status": "ok"}
