"""FastAPI application exposing authority lookup to autocomplete widgets.

- GET /authorities/{term}?q=<prefix>&model=<model> -> [{uri, label}]
- GET /health

Store failures map to 503 so clients can retry.
"""

import sqlite3
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query, status

from app.api.models import HealthResponse, TermMatchResponse
from authorities.exceptions import StoreUnavailableError
from authorities.service import LocalAuthorityService
from authorities.settings import load_settings
from authorities.utils.logger import LoggerManager

logger = LoggerManager.get_logger(__name__)

app = FastAPI(
    title="Local Authorities Lookup API",
    description="Typeahead lookup over harvested controlled vocabularies",
    version="0.1.0",
)

# Global state (initialized on startup)
service: Optional[LocalAuthorityService] = None


def get_service() -> LocalAuthorityService:
    """Get the authority service.

    Raises:
        HTTPException: If the service is not initialized
    """
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authority service not initialized",
        )
    return service


@app.on_event("startup")
async def startup_event():
    """Initialize application state on startup."""
    global service
    settings = load_settings()
    service = LocalAuthorityService.from_settings(settings)
    logger.info("API started", extra={"extra_data": {"db_path": str(settings.database.path)}})


@app.on_event("shutdown")
async def shutdown_event():
    """Release the store on shutdown."""
    global service
    if service is not None:
        service.close()
        service = None
    logger.info("API stopped")


@app.get("/health", response_model=HealthResponse)
def health_check():
    """Report whether the authority store can be queried."""
    try:
        authorities = len(get_service().list_authorities())
    except (HTTPException, sqlite3.DatabaseError) as e:
        logger.error("Health check failed", extra={"extra_data": {"error": str(e)}})
        return HealthResponse(status="unhealthy", database_connected=False)
    return HealthResponse(status="healthy", database_connected=True, authorities=authorities)


@app.get("/authorities/{term}", response_model=List[TermMatchResponse])
def lookup(
    term: str,
    q: str = Query("", description="Label prefix typed by the user"),
    model: Optional[str] = Query(None, description="Model whose field is being edited"),
):
    """Return up to 25 {uri, label} candidates whose label starts with `q`."""
    try:
        matches = get_service().entries_by_term(term, q, model=model)
    except StoreUnavailableError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        ) from e
    return [TermMatchResponse(uri=m.uri, label=m.label) for m in matches]
