"""Response bodies shared by several routers."""

from pydantic import BaseModel


class SuccessResponse(BaseModel):
    success: bool = True
    message: str | None = None


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    uptime_seconds: float
    active_runs: int = 0


class RootResponse(BaseModel):
    name: str
    version: str
    status: str
