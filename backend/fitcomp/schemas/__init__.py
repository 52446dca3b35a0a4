"""
FitComp - Pydantic Schemas
==========================
Request/Response schemas for the API layer.
"""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "1.0.0"
    database: str = "connected"
    uptime_seconds: float = 0
