"""Response models for the lookup API.

These Pydantic models define the API contract between autocomplete clients
and the server.
"""

from pydantic import BaseModel, Field


class TermMatchResponse(BaseModel):
    """One lookup candidate.

    Attributes:
        uri: Resolvable identifier of the authority entry
        label: Display label
    """

    uri: str = Field(..., description="Authority entry URI")
    label: str = Field(..., description="Human-readable label")


class HealthResponse(BaseModel):
    """Response from /health endpoint.

    Attributes:
        status: Health status (healthy, unhealthy)
        database_connected: Whether the authority store answered a query
        authorities: Number of harvested authorities
    """

    status: str = Field(..., description="Overall health status")
    database_connected: bool = Field(..., description="Authority store status")
    authorities: int = Field(0, description="Number of harvested authorities")
