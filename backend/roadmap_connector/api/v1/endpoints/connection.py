"""Connection maintenance endpoints: retract and clear."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from roadmap_connector.api import deps
from roadmap_connector.core.crawl_service import CrawlService, RunResult
from roadmap_connector.core.datetime_utils import utc_now

router = APIRouter()


class MaintenanceResponse(BaseModel):
    """Result of a maintenance operation."""

    operation: str = Field(..., description="Operation that was invoked")
    outcome: str = Field(..., description="completed or skipped")
    reason: Optional[str] = Field(None, description="Why the operation was skipped")
    items: int = Field(0, description="Number of items affected")
    state: str = Field(..., description="Run state after the operation")
    timestamp: datetime = Field(default_factory=utc_now)


def _to_response(result: RunResult, service: CrawlService) -> MaintenanceResponse:
    return MaintenanceResponse(
        operation=result.operation.value,
        outcome=result.outcome.value,
        reason=result.reason,
        items=result.fetched - result.skipped,
        state=service.state.value,
    )


@router.post("/retract", response_model=MaintenanceResponse)
async def retract_connection(
    service: CrawlService = Depends(deps.get_service),
) -> MaintenanceResponse:
    """Delete the external connection and reset the watermark.

    Preempts any running crawl. Skipped when the connection is not ready.
    """
    result = await service.retract()
    return _to_response(result, service)


@router.post("/clear", response_model=MaintenanceResponse)
async def clear_connection(
    service: CrawlService = Depends(deps.get_service),
) -> MaintenanceResponse:
    """Remove all indexed items and reset the watermark.

    Skipped when the connection is not ready or a full crawl is in progress.
    """
    result = await service.clear()
    return _to_response(result, service)
