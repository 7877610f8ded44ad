from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from cloudpulse.schemas.common import ErrorResponse
from cloudpulse.schemas.sentinel import RunResult
from cloudpulse.services.sentinel_loop import run_once
from cloudpulse.state import get_state

router = APIRouter(prefix="/api/sentinel", tags=["Sentinel"])


@router.post(
    "/run",
    response_model=RunResult,
    responses={500: {"model": ErrorResponse}},
    summary="Run sentinel",
    description="Health-check every monitored instance now and return the run summary.",
    operation_id="run_sentinel",
)
async def run_sentinel(request: Request) -> RunResult:
    """Trigger one sentinel run."""
    try:
        return await run_once(get_state(request.app))
    except Exception as exc:
        raise HTTPException(status_code=500, detail=f"sentinel run failed: {exc}")


@router.get(
    "/last-run",
    response_model=RunResult,
    responses={404: {"model": ErrorResponse}},
    summary="Last sentinel run",
    description="Summary of the most recent run completed by this process.",
    operation_id="last_sentinel_run",
)
def last_run(request: Request) -> RunResult:
    """Return the most recent run summary."""
    result = get_state(request.app).last_run
    if result is None:
        raise HTTPException(status_code=404, detail="no sentinel run yet")
    return result
