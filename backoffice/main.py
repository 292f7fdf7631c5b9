from typing import Optional
import logging

from fastapi import FastAPI

from backoffice.api import data, entities, reports
from backoffice.core.config import settings
from backoffice.core.middleware import AuditMiddleware
from backoffice.db.store import EntityStore, get_default_store

logger = logging.getLogger(__name__)


def create_app(store: Optional[EntityStore] = None) -> FastAPI:
    """Build the API around ``store``; the process-wide store is used when none is given."""
    logging.getLogger("backoffice").setLevel(settings.LOG_LEVEL)

    app = FastAPI(title=settings.PROJECT_NAME)
    app.state.store = store if store is not None else get_default_store()

    # Include routers; reports first so /customers/summary wins over /customers/{id}
    app.include_router(data.router)
    app.include_router(reports.router)
    app.include_router(entities.router)

    app.add_middleware(AuditMiddleware)

    logger.info(f"{settings.PROJECT_NAME} ready: {app.state.store.counts()}")
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
