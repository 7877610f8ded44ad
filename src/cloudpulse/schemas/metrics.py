from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

HEALTH_CHECK_METRIC = "health_check_latency"


class MetricOut(BaseModel):
    """A stored metric record (health-check latency or externally ingested)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Metric record id.")
    instance_id: str = Field(..., description="Instance the metric belongs to.", alias="instanceId")
    timestamp: str = Field(..., description="ISO timestamp of the measurement.")
    metric_name: str = Field(..., description="Metric key, e.g. 'health_check_latency'.", alias="metricName")
    metric_value: float = Field(..., description="Measured value.", alias="metricValue")
    unit: str = Field(..., description="Unit string, e.g. 'milliseconds'.")
    tags: Dict[str, str] = Field(default_factory=dict, description="Free-form labels (status, source, ...).")
    created_at: str = Field(..., description="ISO creation timestamp.", alias="createdAt")


class MetricListResponse(BaseModel):
    """Envelope for listing metrics."""

    items: List[MetricOut] = Field(..., description="Metric records, newest first.")
    total: int = Field(..., ge=0, description="Total count returned.")
