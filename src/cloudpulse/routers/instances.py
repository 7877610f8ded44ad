from __future__ import annotations

from fastapi import APIRouter, HTTPException, Path, Request, status

from cloudpulse.schemas.common import ErrorResponse
from cloudpulse.schemas.instances import InstanceCreate, InstanceListResponse, InstanceOut
from cloudpulse.services import instances_service
from cloudpulse.state import get_state

router = APIRouter(prefix="/api/instances", tags=["Instances"])


@router.get(
    "",
    response_model=InstanceListResponse,
    summary="List instances",
    description="Return all monitored instances with their latest health state.",
    operation_id="list_instances",
)
async def list_instances(request: Request) -> InstanceListResponse:
    """List all monitored instances."""
    state = get_state(request.app)
    items = await instances_service.list_instances(state.store, state.config.instances_collection)
    return InstanceListResponse(items=items, total=len(items))


@router.post(
    "",
    response_model=InstanceOut,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Register instance",
    description="Register a new instance for sentinel monitoring.",
    operation_id="create_instance",
)
async def create_instance(request: Request, payload: InstanceCreate) -> InstanceOut:
    """Register a new monitored instance."""
    if not payload.name.strip():
        raise HTTPException(status_code=400, detail="name must not be empty")
    if not payload.type.strip():
        raise HTTPException(status_code=400, detail="type must not be empty")
    if not payload.region.strip():
        raise HTTPException(status_code=400, detail="region must not be empty")
    if payload.endpoint and not payload.endpoint.strip().startswith(("http://", "https://")):
        raise HTTPException(status_code=400, detail="endpoint must be an http(s) URL")

    state = get_state(request.app)
    try:
        return await instances_service.create_instance(state.store, state.config.instances_collection, payload)
    except instances_service.DuplicateInstanceError:
        raise HTTPException(status_code=409, detail="instance already exists")


@router.get(
    "/{instance_id}",
    response_model=InstanceOut,
    responses={404: {"model": ErrorResponse}},
    summary="Get instance",
    description="Fetch a single instance by ID.",
    operation_id="get_instance",
)
async def get_instance(request: Request, instance_id: str = Path(..., description="Instance identifier")) -> InstanceOut:
    """Fetch a single instance by ID."""
    state = get_state(request.app)
    inst = await instances_service.get_instance(state.store, state.config.instances_collection, instance_id)
    if not inst:
        raise HTTPException(status_code=404, detail="instance not found")
    return inst


@router.delete(
    "/{instance_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
    summary="Delete instance",
    description="Stop monitoring an instance. Its metrics and alerts are kept.",
    operation_id="delete_instance",
)
async def delete_instance(request: Request, instance_id: str = Path(..., description="Instance identifier")) -> None:
    """Delete an instance registration."""
    state = get_state(request.app)
    ok = await instances_service.delete_instance(state.store, state.config.instances_collection, instance_id)
    if not ok:
        raise HTTPException(status_code=404, detail="instance not found")
    return None
